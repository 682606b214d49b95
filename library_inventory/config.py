import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # API settings
    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000/api")
    gateway_timeout: float = float(os.getenv("GATEWAY_TIMEOUT", "10"))
    gateway_connect_timeout: float = float(os.getenv("GATEWAY_CONNECT_TIMEOUT", "5"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Inventory System")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")


settings = Settings()
