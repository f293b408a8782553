"""
WSGI application for gunicorn
gunicorn -w 4 -b 0.0.0.0:5000 wsgi:application
"""
from clinic_booking import create_app

application = create_app()
