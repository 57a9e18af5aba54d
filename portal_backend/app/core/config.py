from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./portal.db"
    jwt_secret: str = "change_me_in_production"
    environment: str = "development"
    log_level: str = "INFO"

    # Upstream college records API
    backend_api_url: str = "http://localhost:5002/api"
    backend_timeout_seconds: float = 10.0

    institution_name: str = "NIMAPARA AUTONOMOUS COLLEGE, NIMAPARA"
    institution_address: str = "At/Po: Nimapara, Dist: Puri, Odisha - 752106"
    examination_year: int = 2025
    academic_year: str = "2024-2025"

    render_scale: float = 2.0
    max_photo_bytes: int = 2 * 1024 * 1024

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
