# extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Single source of truth for the db object.
# Bound to an application inside create_app().
db = SQLAlchemy()

# Schema migrations for owners, properties, contacts and coordinates
migrate = Migrate()
