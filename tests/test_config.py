import pytest

from services.shared.config import DEFAULT_MAX_FILE_BYTES, DEFAULT_ORIENT_URL, load_runtime_config
from services.shared.errors import ConfigurationMissing


REQUIRED_ENV = {
    "GOOGLE_SERVICE_ACCOUNT_BASE64": "e30=",
    "GOOGLE_DRIVE_FOLDER_ID": "folder-123",
    "GOOGLE_SHEETS_ID": "sheet-1",
    "SENDGRID_API_KEY": "SG.key",
    "FROM_EMAIL": "no-reply@clinic.example",
    "TO_EMAIL": "executive@clinic.example",
}
OPTIONAL_ENV = (
    "ORIENT_URL",
    "MAX_FILE_BYTES",
    "MAX_FILES",
    "REQUIRED_FIELDS",
    "HONEYPOT_FIELD",
    "SEND_APPLICANT_ACK",
    "UPLOAD_MAX_CONCURRENCY",
    "LEDGER_RANGE",
    "STORAGE_BACKEND",
    "CONTACT_EMAIL",
)


def _set_env(monkeypatch, **overrides: str) -> None:
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    for name, value in {**REQUIRED_ENV, **overrides}.items():
        monkeypatch.setenv(name, value)


def test_load_runtime_config_defaults(monkeypatch) -> None:
    _set_env(monkeypatch)
    config = load_runtime_config()
    assert config.storage_container_id == "folder-123"
    assert config.orient_url == DEFAULT_ORIENT_URL
    assert config.max_file_bytes == DEFAULT_MAX_FILE_BYTES == 25 * 1024 * 1024
    assert config.required_fields == ("name", "email")
    assert config.honeypot_field == "website"
    assert config.send_applicant_ack is True
    assert config.upload_max_concurrency == 4
    assert config.ledger_range == "Submissions!A1"
    assert config.storage_backend == "drive"
    assert config.contact_email == "executive@clinic.example"


def test_load_runtime_config_overrides(monkeypatch) -> None:
    _set_env(
        monkeypatch,
        ORIENT_URL="https://clinic.example/orientation",
        MAX_FILE_BYTES="1024",
        REQUIRED_FIELDS="role, email",
        SEND_APPLICANT_ACK="false",
        UPLOAD_MAX_CONCURRENCY="0",
        STORAGE_BACKEND="GCS",
    )
    config = load_runtime_config()
    assert config.orient_url == "https://clinic.example/orientation"
    assert config.max_file_bytes == 1024
    assert config.required_fields == ("name", "email", "role")
    assert config.send_applicant_ack is False
    assert config.upload_max_concurrency == 1
    assert config.storage_backend == "gcs"


@pytest.mark.parametrize("missing", sorted(REQUIRED_ENV))
def test_load_runtime_config_requires_env(monkeypatch, missing: str) -> None:
    _set_env(monkeypatch)
    monkeypatch.delenv(missing)
    with pytest.raises(ConfigurationMissing) as excinfo:
        load_runtime_config()
    assert excinfo.value.name == missing
    assert isinstance(excinfo.value, RuntimeError)
