from flask import Blueprint

summaries_bp = Blueprint('summaries', __name__)

from . import routes  # noqa: E402,F401
