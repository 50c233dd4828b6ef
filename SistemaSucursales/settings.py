from pathlib import Path
from dotenv import load_dotenv
import os
from datetime import timedelta
from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv()

SECRET_KEY = os.getenv("SECRET_KEY", "dev-key-change-me")

DEBUG = os.getenv("DEBUG", "False") == "True"  # Cambiar en producción a False

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'rest_framework',
    'rest_framework_simplejwt',
    'drf_yasg',
    'drf_spectacular',
    'django_celery_beat',
    'django_celery_results',
    'api',  # app principal (notificaciones, señales y tareas)
    'api.users',  # app para usuarios
    'api.productos',  # catálogo mínimo de productos
    'api.sucursales',  # app para las sucursales
    'api.stock',  # stock por sucursal y libro de movimientos
    'api.transferencias',  # transferencias entre sucursales
    'api.ventas',  # integración de ventas con el stock
]
# Apunta a la app 'users' y al modelo 'CustomUser'
AUTH_USER_MODEL = 'users.CustomUser'

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    "corsheaders.middleware.CorsMiddleware",
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    # Middleware de seguridad para manejo de errores
    'api.middleware.secure_error_middleware.SecureErrorMiddleware',
]

ROOT_URLCONF = 'SistemaSucursales.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'SistemaSucursales.wsgi.application'

DATABASES = {
    'default': {
        "ENGINE": "django.db.backends.mysql",
        "NAME": os.getenv("MYSQL_DATABASE"),
        "USER": os.getenv("MYSQL_USER"),
        "PASSWORD": os.getenv("MYSQL_PASSWORD"),
        'HOST': os.getenv("MYSQL_HOST"),
        'PORT': os.getenv("MYSQL_PORT"),
        "OPTIONS": {
            "charset": "utf8mb4",
            "sql_mode": "STRICT_TRANS_TABLES",
            "init_command": "SET sql_mode='STRICT_TRANS_TABLES'",
            # Transferencias y ventas bloquean filas de stock; se prefiere lectura confirmada
            "isolation_level": "read committed",
        },
    }
}

if os.getenv("USE_SQLITE") == "1":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

CORS_ALLOWED_ORIGINS = [
    origin for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if origin
]
CORS_ALLOW_METHODS = (
    "DELETE",
    "GET",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
)
CORS_ALLOW_HEADERS = (
    "accept",
    "authorization",
    "content-type",
    "user-agent",
    "x-csrftoken",
    "x-requested-with",
)


AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]

REST_FRAMEWORK = {
    # Authentication
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),

    # Permissions
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),

    # Parsers
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.FormParser',
    ],

    # Schema
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    # Pagination
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 100,

    # Renderers
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],

    # Throttling
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.UserRateThrottle',
        'rest_framework.throttling.AnonRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'user': '10000/day',
        'anon': '5000/day',
    },
}


SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=40),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": False,
    "BLACKLIST_AFTER_ROTATION": False,
    "UPDATE_LAST_LOGIN": False,

    "ALGORITHM": "HS256",
    "SIGNING_KEY": os.getenv("SECRET_KEY_JWT", SECRET_KEY),
}

LANGUAGE_CODE = 'es-ar'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USE_TLS = os.getenv("EMAIL_USE_TLS", "True") == "True"
EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER")
EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD")
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "no-reply@sucursales.local")

# Deshabilitar signals durante cargas masivas o tests
# Para deshabilitar: export DISABLE_SIGNALS=True (Linux/Mac) o set DISABLE_SIGNALS=True (Windows)
DISABLE_SIGNALS = os.getenv("DISABLE_SIGNALS", "False") == "True"

# === Stock por sucursal ===#
# Stock mínimo asignado a las entradas creadas sin valor explícito
STOCK_MINIMO_POR_DEFECTO = int(os.getenv("STOCK_MINIMO_POR_DEFECTO", "5"))
# Tamaño de página del historial de movimientos
STOCK_MOVIMIENTOS_PAGE_SIZE = int(
    os.getenv("STOCK_MOVIMIENTOS_PAGE_SIZE", "50"))
STOCK_MOVIMIENTOS_MAX_PAGE_SIZE = int(
    os.getenv("STOCK_MOVIMIENTOS_MAX_PAGE_SIZE", "200"))
# Reintentos que la capa API hace ante ConcurrentModification
STOCK_REINTENTOS_CONCURRENCIA = int(
    os.getenv("STOCK_REINTENTOS_CONCURRENCIA", "3"))

# Configuración robusta de logging


def get_logging_config():
    """
    Retorna configuración de logging robusta que maneja diferentes entornos.
    """
    logs_dir = os.path.join(BASE_DIR, 'logs')

    # Intentar crear directorio de logs
    try:
        os.makedirs(logs_dir, exist_ok=True)
        file_logging_available = True
    except (OSError, PermissionError):
        file_logging_available = False

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '[{levelname}] {asctime} {name}: {message}',
                'style': '{',
            },
            'detailed': {
                'format': '[{levelname}] {asctime} {name} ({pathname}:{lineno}): {message}',
                'style': '{',
            },
            'security': {
                'format': '[SECURITY] {asctime} {name}: {message}',
                'style': '{',
            },
        },
        'filters': {
            'require_debug_true': {
                '()': 'django.utils.log.RequireDebugTrue',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
            },
            'console_debug': {
                'class': 'logging.StreamHandler',
                'formatter': 'detailed',
                'filters': ['require_debug_true'],
            },
            'security_log': {
                'class': 'logging.StreamHandler',
                'formatter': 'security',
                'level': 'WARNING',
            },
        },
        'loggers': {
            'django': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': True,
            },
            'api.middleware.secure_error_middleware': {
                'handlers': ['security_log'],
                'level': 'WARNING',
                'propagate': False,
            },
            'api.stock': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False,
            },
            'api.transferencias': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False,
            },
            'api': {
                'handlers': ['console', 'console_debug'],
                'level': 'INFO',
                'propagate': False,
            },
        },
    }

    # Agregar logging a archivo solo si está disponible
    if file_logging_available:
        config['handlers']['error_file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.path.join(logs_dir, 'errors.log'),
            'maxBytes': 1024*1024*5,  # 5MB
            'backupCount': 5,
            'formatter': 'detailed',
            'level': 'ERROR',
        }
        for logger_name in ('api.middleware.secure_error_middleware', 'api.stock',
                            'api.transferencias', 'api'):
            config['loggers'][logger_name]['handlers'].append('error_file')

    return config


LOGGING = get_logging_config()

SPECTACULAR_SETTINGS = {
    'TITLE': '📦 API Stock Multi-Sucursal',
    'DESCRIPTION': '''
📄 Descripción
    API para el control de stock por sucursal: saldo por producto, historial
    de movimientos auditable y transferencias entre sucursales con aprobación,
    devoluciones parciales y cancelación.

🔒 Autenticación
    JWT con esquema Bearer.
    1. **Obtener Token**: POST a `/api/v1/token` con credenciales
    2. **Usar Token**: Incluir `Authorization: Bearer <token>` en headers
    3. **Renovar Token**: POST a `/api/v1/token/refresh` con refresh token

📋 Reglas de Negocio Principales
    - El stock de una sucursal nunca queda negativo
    - Todo cambio de stock deja un movimiento con saldo anterior y nuevo
    - Las transferencias se aprueban completas o no se aplican
    - Las devoluciones nunca superan lo transferido
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'COMPONENT_NO_READ_ONLY_REQUIRED': True,
    'SWAGGER_UI_SETTINGS': {
        'deepLinking': True,
        'persistAuthorization': True,
        'displayOperationId': True,
        'docExpansion': 'none',
        'filter': True,
    },
}

SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Bearer': {
            'type': 'apiKey',
            'name': 'Authorization',
            'in': 'header',
            'description': 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"'
        }
    },
    'USE_SESSION_AUTH': False,
    'JSON_EDITOR': True,
    'OPERATIONS_SORTER': 'alpha',
    'TAGS_SORTER': 'alpha',
    'DOC_EXPANSION': 'none',
    'DEEP_LINKING': True,
}

# Configuración de Redis
REDIS_HOST = os.getenv('REDIS_HOST', 'redis')
REDIS_PORT = int(os.getenv('REDIS_PORT', 6379))
REDIS_PASS = os.getenv('REDIS_PASSWORD', '')

if REDIS_PASS:
    REDIS_URL = f"redis://:{REDIS_PASS}@{REDIS_HOST}:{REDIS_PORT}/1"
else:
    REDIS_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/1"

# Variable global para evitar múltiples tests de Redis
_redis_test_done = False
_redis_available = False


def is_redis_available():
    """
    Prueba la conexión a Redis con autenticación.
    Solo ejecuta el test una vez por proceso Django.
    """
    global _redis_test_done, _redis_available

    if _redis_test_done:
        return _redis_available

    try:
        import redis
        client = redis.Redis(
            host=REDIS_HOST,
            port=REDIS_PORT,
            password=REDIS_PASS or None,
            socket_connect_timeout=1,
            socket_timeout=1,
            db=1
        )
        client.ping()
        _redis_available = True

    except Exception as e:
        _redis_available = False
        print(f"⚠️  Redis no disponible ({e}), usando cache en memoria local")
    finally:
        _redis_test_done = True

    return _redis_available


# Configurar cache basado en disponibilidad de Redis
if os.getenv("SKIP_REDIS_CHECK") != "1" and is_redis_available():
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "CONNECTION_POOL_KWARGS": {
                    "retry_on_timeout": True,
                    "max_connections": 50,
                },
                "IGNORE_EXCEPTIONS": True,
            }
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'sistema-sucursales-cache',
            'OPTIONS': {
                'MAX_ENTRIES': 1000,
                'CULL_FREQUENCY': 3,
            }
        }
    }

# Configuración de Celery con Redis como broker
if REDIS_PASS:
    CELERY_BROKER_URL = f"redis://:{REDIS_PASS}@{REDIS_HOST}:{REDIS_PORT}/2"
else:
    CELERY_BROKER_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/2"
CELERY_RESULT_BACKEND = 'django-db'

# Serialización
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'

# Zona horaria
CELERY_TIMEZONE = TIME_ZONE
CELERY_ENABLE_UTC = True

# Conf Task
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutos
CELERY_TASK_SOFT_TIME_LIMIT = 25 * 60  # 25 minutos
CELERY_RESULT_EXPIRES = 60 * 60  # 1 hora

# Workers
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_WORKER_MAX_TASKS_PER_CHILD = 100
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True

CELERY_TASK_DEFAULT_QUEUE = 'default'
CELERY_TASK_ROUTES = {
    'enviar_notificacion_task': {'queue': 'notificaciones'},
}

# Planificador en base de datos (django-celery-beat) con una entrada por defecto
CELERY_BEAT_SCHEDULER = 'django_celery_beat.schedulers:DatabaseScheduler'
CELERY_BEAT_SCHEDULE = {
    'revisar-stock-bajo-diario': {
        'task': 'revisar_stock_bajo_task',
        'schedule': crontab(hour=7, minute=0),
    },
}
