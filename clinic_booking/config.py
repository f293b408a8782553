import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///clinic_booking.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Booking coordination: 'synchronous', 'event' or 'workflow'
    BOOKING_STRATEGY = os.getenv('BOOKING_STRATEGY', 'synchronous')
    APPOINTMENT_DURATION_MINUTES = int(os.getenv('APPOINTMENT_DURATION_MINUTES', '60'))
    SEED_RESOURCES = os.getenv('SEED_RESOURCES', 'true').lower() == 'true'
    AUTO_CREATE_TABLES = os.getenv('AUTO_CREATE_TABLES', 'true').lower() == 'true'

    # Resource service boundary (empty URL = in-process calls)
    RESOURCE_SERVICE_URL = os.getenv('RESOURCE_SERVICE_URL', '')
    RESOURCE_SERVICE_TIMEOUT = float(os.getenv('RESOURCE_SERVICE_TIMEOUT', '10'))

    # Workflow engine (Camunda 7 REST API)
    WORKFLOW_ENGINE_URL = os.getenv('WORKFLOW_ENGINE_URL', 'http://camunda-platform:8080/engine-rest')
    WORKFLOW_ENGINE_USER = os.getenv('WORKFLOW_ENGINE_USER', 'demo')
    WORKFLOW_ENGINE_PASSWORD = os.getenv('WORKFLOW_ENGINE_PASSWORD', 'demo')
    WORKFLOW_ENGINE_TIMEOUT = float(os.getenv('WORKFLOW_ENGINE_TIMEOUT', '15'))
    WORKFLOW_PROCESS_KEY = os.getenv('WORKFLOW_PROCESS_KEY', 'appointment-decision')

    # External task worker
    WORKER_ID = os.getenv('WORKER_ID', 'resource-reservation-worker')
    WORKER_TOPIC = os.getenv('WORKER_TOPIC', 'appointment-reserve-resources')
    WORKER_LOCK_DURATION_MS = int(os.getenv('WORKER_LOCK_DURATION_MS', '5000'))
    WORKER_MAX_TASKS = int(os.getenv('WORKER_MAX_TASKS', '10'))
    WORKER_MAX_PARALLEL = int(os.getenv('WORKER_MAX_PARALLEL', '100'))
    WORKER_ASYNC_RESPONSE_TIMEOUT_MS = int(os.getenv('WORKER_ASYNC_RESPONSE_TIMEOUT_MS', '5000'))
    WORKER_FETCH_INTERVAL = float(os.getenv('WORKER_FETCH_INTERVAL', '5'))
    WORKER_RESOURCE_SERVICE_URL = os.getenv('WORKER_RESOURCE_SERVICE_URL', 'http://resource-service:8080')

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = 'UTC'
    CELERY_ENABLE_UTC = True
    CELERY_TASK_ALWAYS_EAGER = False
    EVENT_MAX_RETRIES = int(os.getenv('EVENT_MAX_RETRIES', '5'))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Database connection pool for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
        'connect_args': {
            'connect_timeout': 10,
            'options': '-c statement_timeout=30000'
        }
    }

    # Schema comes from migrations (flask db upgrade)
    AUTO_CREATE_TABLES = os.getenv('AUTO_CREATE_TABLES', 'false').lower() == 'true'

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RESOURCE_SERVICE_URL = ''
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
