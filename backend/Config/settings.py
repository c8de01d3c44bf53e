"""
Django settings for Config project.

配置项统一从环境变量读取（os.getenv），未设置时使用适合本地开发的默认值
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(key: str, default: str = "False") -> bool:
    return os.getenv(key, default).lower() in ("1", "true", "yes")


SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-menus-local-dev-key")

DEBUG = _env_bool("DEBUG")

ALLOWED_HOSTS = [h for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "apps.menus",
]

MIDDLEWARE = []

# ------------------------
# 数据库
# ------------------------

DB_ENGINE = os.getenv("DB_ENGINE", "django.db.backends.sqlite3")

if DB_ENGINE.endswith("sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.getenv("DB_NAME", "menus"),
            "USER": os.getenv("DB_USER", ""),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", "127.0.0.1"),
            "PORT": os.getenv("DB_PORT", ""),
        }
    }

# 事务外读使用的连接别名：指向独立连接时可读到已提交数据；默认与 default 相同
NO_TRANS_DB_ALIAS = os.getenv("NO_TRANS_DB_ALIAS", "default")

# 设置为其他别名时，自动注册一个与 default 指向同一数据库的独立连接（测试时镜像 default，不单独建库）
if NO_TRANS_DB_ALIAS != "default":
    DATABASES[NO_TRANS_DB_ALIAS] = {**DATABASES["default"], "TEST": {"MIRROR": "default"}}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ------------------------
# 国际化
# ------------------------

LANGUAGE_CODE = "zh-hans"
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Shanghai")
USE_I18N = True
USE_TZ = True

# ------------------------
# 日志
# ------------------------

LOG_PATH = os.getenv("LOG_PATH", str(BASE_DIR / "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ------------------------
# 菜单
# ------------------------

# 分布式 ID 节点号（0~1023），多实例部署时需各不相同
SNOWFLAKE_NODE_ID = int(os.getenv("SNOWFLAKE_NODE_ID", "1"))

# 迁移完成后是否自动导入初始菜单树
MENU_INIT_ENABLED = _env_bool("MENU_INIT_ENABLED")
MENU_DATA_FILE = os.getenv("MENU_DATA_FILE", str(BASE_DIR / "resources" / "menu.yaml"))
