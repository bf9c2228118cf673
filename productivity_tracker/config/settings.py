from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """Application settings with validation"""
    
    # Scoring Configuration
    DEFAULT_PENALTY_MINUTES: int = 5
    RECOVERY_MINUTES: int = 5
    
    # Display Configuration
    REFRESH_INTERVAL_SECONDS: float = 1.0
    
    # Path Configuration
    BASE_DIR: Path = Path(__file__).parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOG_DIR: Path = BASE_DIR / "logs"
    DEFAULT_DB_PATH: Path = DATA_DIR / "productivity_tracker.db"
    
    # Web Configuration
    WEB_PORT: int = 8000
    WEB_HOST: str = "127.0.0.1"
    
    # Development Configuration
    DEBUG: bool = False
    ENV: str = "production"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )
    
    def validate_paths(self) -> None:
        """Ensure all required paths exist"""
        for path in [self.DATA_DIR, self.LOG_DIR]:
            path.mkdir(parents=True, exist_ok=True)

settings = Settings()
