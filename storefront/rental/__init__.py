from flask import Blueprint

bp = Blueprint("rental", __name__, url_prefix="/api/rentals")

from . import routes  # noqa: E402,F401
