from celery import Celery
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Shared database, migration and task queue instances
db = SQLAlchemy()
migrate = Migrate()
celery = Celery('clinic_booking')
