"""Application-wide extensions.

Extension instances live here so that models, services and blueprints can import
them without importing the application factory.
"""

from flask_apscheduler import APScheduler
from flask_login import LoginManager

from .db_instance import db

login_manager = LoginManager()
login_manager.session_protection = "basic"

scheduler = APScheduler()

__all__ = ["db", "login_manager", "scheduler"]
