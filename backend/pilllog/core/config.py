from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "PillLog"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Database (in-memory by default, nothing survives a restart)
    DATABASE_URL: str = "sqlite+pysqlite:///:memory:"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Single demo account, there is no login
    DEMO_USER_ID: str = "demo-user-id"
    DEMO_USERNAME: str = "demo"

    # Google Cloud Vision OCR
    GOOGLE_VISION_API_KEY: str = ""
    GOOGLE_VISION_API_URL: str = "https://vision.googleapis.com/v1/images:annotate"
    OCR_TIMEOUT_SECONDS: float = 30.0

    # MFDS drug product registry (data.go.kr)
    KFDA_API_KEY: str = ""
    KFDA_API_BASE_URL: str = "http://apis.data.go.kr/1471000/DrugPrdtPrmsnInfoService05"
    KFDA_TIMEOUT_SECONDS: float = 10.0

    # Uploads
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024
    UPLOAD_WORKER_COUNT: int = 2
    UPLOAD_QUEUE_SIZE: int = 100

    class Config:
        env_file = "../.env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
