# Overview: Flask extension instances for database, migrations, and the event relay.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .services.event_relay import EventRelay

db = SQLAlchemy()
migrate = Migrate()
relay = EventRelay()
