# tests/test_config.py
from pathlib import Path

import pytest

from app.config import load_settings


def test_mysql_url_is_built_from_db_variables():
    s = load_settings({"DB_HOST": "db", "DB_USER": "shop", "DB_PASSWORD": "s3cret", "DB_NAME": "catalog"})
    assert s.sqlalchemy_url.render_as_string(hide_password=False) == "mysql+pymysql://shop:s3cret@db:3306/catalog"


def test_database_url_overrides_db_variables():
    s = load_settings({"DATABASE_URL": "sqlite:///tmp/x.db", "DB_HOST": "ignored"})
    assert s.sqlalchemy_url == "sqlite:///tmp/x.db"


def test_missing_database_settings_are_named():
    with pytest.raises(RuntimeError) as exc:
        load_settings({"DB_HOST": "db"})
    assert "DB_USER" in str(exc.value)
    assert "DB_NAME" in str(exc.value)


def test_defaults_and_overrides():
    s = load_settings({"DATABASE_URL": "sqlite://", "PORT": "8085", "UPLOAD_DIR": "/srv/uploads"})
    assert s.port == 8085
    assert s.upload_dir == Path("/srv/uploads")
    assert s.checkout_timeout == 5.0
    assert s.log_level == "INFO"


def test_empty_values_fall_back_to_defaults():
    s = load_settings({"DATABASE_URL": "sqlite://", "PORT": ""})
    assert s.port == 3000


def test_invalid_numbers_are_rejected():
    with pytest.raises(RuntimeError):
        load_settings({"DATABASE_URL": "sqlite://", "CHECKOUT_TIMEOUT": "-1"})
