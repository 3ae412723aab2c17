from flask import Blueprint

students_bp = Blueprint('students', __name__)
professors_bp = Blueprint('professors', __name__)

from . import routes  # noqa: E402,F401
