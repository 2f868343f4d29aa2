from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10-19.v1"
    database_url: str = "sqlite:///./trustrent.db"
    app_base_url: str = "http://localhost:3000"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "jwt"  # dev|jwt
    dev_auto_provision: bool = True
    dev_header_admin_email: str = "X-Admin-Email"

    password_pbkdf2_iters: int = 210_000
    password_min_length: int = 6

    # ---- JWT cookies ----
    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days (admin)
    renter_session_minutes: int = 60 * 24 * 30  # 30 days
    admin_cookie_name: str = "trustrent_admin"
    renter_cookie_name: str = "trustrent_renter"
    jwt_cookie_secure: int = 0
    jwt_cookie_samesite: str = "lax"

    # ---- Access tokens ----
    token_max_attempts: int = 10

    # ---- Reconciliation policy ----
    # Keep redeemed invitations when a renter disappears from a later save.
    retain_used_invitations: bool = False
    # Email newly created invitations right after a successful save.
    auto_send_invites: bool = False

    # ---- Email (SendGrid v3) ----
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None
    sendgrid_base_url: str = "https://api.sendgrid.com/v3"
    sendgrid_timeout_seconds: float = 15.0

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
