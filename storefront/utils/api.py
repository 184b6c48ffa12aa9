from datetime import datetime, timezone

from flask import jsonify


def _server_time():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def api_ok(message, data=None):
    return {
        "success": True,
        "message": message,
        "data": data,
        "server_time": _server_time(),
    }


def api_error(message, error=None):
    return {
        "success": False,
        "message": message,
        "error": error,
        "server_time": _server_time(),
    }


# ---- standard API response format -------------------------------------------
def ok(message, data=None, status=200):
    r = jsonify(api_ok(message, data)); r.status_code = status; return r

def err(message, status=400, error=None):
    r = jsonify(api_error(message, error)); r.status_code = status; return r
