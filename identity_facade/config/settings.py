"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROFILE_STORE_URL = "sqlite:///data/profiles.db"
DEFAULT_AUTHN_SCOPE = "openid profile email"
DEFAULT_DB_CONNECTION = "Username-Password-Authentication"
DEFAULT_HTTP_TIMEOUT = 5.0
SECRETS_DIR = "/run/secrets"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """Mounted secret file first, then ``env_var``; None when neither is set."""
    secret_file = Path(SECRETS_DIR) / secret_name
    if secret_file.is_file():
        try:
            value = secret_file.read_text().strip()
        except OSError as exc:
            print(f"[settings] Could not read {SECRETS_DIR}/{secret_name}: {exc}")
        else:
            if value:
                print(f"[settings] {secret_name} taken from {SECRETS_DIR}")
                return value
    if not env_var:
        return None
    return os.getenv(env_var) or None


def normalize_https_url(value: str) -> str:
    """Return value as an absolute https URL without trailing slash.

    Values that already carry a scheme are kept as they are.
    """
    value = value.strip()
    if value.startswith("http"):
        return value.rstrip("/")
    return "https://" + value.rstrip("/")


def normalize_audience(value: str) -> str:
    """Audiences keep their trailing slash (``https://tenant/api/v2/``)."""
    value = value.strip()
    if value.startswith("http"):
        return value
    return "https://" + value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Identity provider (management API)
    idp_domain: str = ""
    idp_mgmt_client_id: str = ""
    idp_mgmt_client_secret: str = ""
    idp_mgmt_audience: str = ""
    idp_db_connection: str = DEFAULT_DB_CONNECTION

    # Identity provider (authentication API)
    idp_authn_client_id: str = ""
    idp_authn_client_secret: str = ""
    idp_authn_audience: str = ""
    idp_authn_scope: str = DEFAULT_AUTHN_SCOPE

    # Outbound HTTP
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    cache_management_token: bool = True

    # Profile store
    profile_store_url: str = DEFAULT_PROFILE_STORE_URL

    # Logging
    log_level: str = "INFO"

    @property
    def idp_base_url(self) -> str:
        """Provider base URL (empty when no domain is configured)."""
        if not self.idp_domain.strip():
            return ""
        return normalize_https_url(self.idp_domain)

    @property
    def management_audience(self) -> str:
        """Management API audience, derived from the domain unless set explicitly."""
        if self.idp_mgmt_audience.strip():
            return normalize_audience(self.idp_mgmt_audience)
        if not self.idp_base_url:
            return ""
        return f"{self.idp_base_url}/api/v2/"

    @property
    def authn_audience(self) -> str | None:
        if not self.idp_authn_audience.strip():
            return None
        return normalize_audience(self.idp_authn_audience)


def _env_bool(var_name: str, default: bool) -> bool:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{var_name} must be positive, got {raw!r}")
    return value


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    mgmt_client_secret = _load_secret_from_file("idp_mgmt_client_secret", "IDP_MGMT_CLIENT_SECRET") or ""
    authn_client_secret = _load_secret_from_file("idp_authn_client_secret", "IDP_AUTHN_CLIENT_SECRET") or ""

    cfg = AppConfig(
        idp_domain=os.environ.get("IDP_DOMAIN", ""),
        idp_mgmt_client_id=os.environ.get("IDP_MGMT_CLIENT_ID", ""),
        idp_mgmt_client_secret=mgmt_client_secret,
        idp_mgmt_audience=os.environ.get("IDP_MGMT_AUDIENCE", ""),
        idp_db_connection=os.environ.get("IDP_DB_CONNECTION") or DEFAULT_DB_CONNECTION,
        idp_authn_client_id=os.environ.get("IDP_AUTHN_CLIENT_ID", ""),
        idp_authn_client_secret=authn_client_secret,
        idp_authn_audience=os.environ.get("IDP_AUTHN_AUDIENCE", ""),
        idp_authn_scope=os.environ.get("IDP_AUTHN_SCOPE") or DEFAULT_AUTHN_SCOPE,
        http_timeout=_env_float("IDP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        cache_management_token=_env_bool("IDP_CACHE_MGMT_TOKEN", True),
        profile_store_url=os.environ.get("PROFILE_STORE_URL") or DEFAULT_PROFILE_STORE_URL,
        log_level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
    )

    print(
        f"[settings] idp={cfg.idp_base_url or 'UNSET'}; connection={cfg.idp_db_connection}; "
        f"mgmt_secret={'***' if cfg.idp_mgmt_client_secret else 'EMPTY'}"
    )
    return cfg
