from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "eSTORE Warehouse"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    DATABASE_URL: str = "sqlite+pysqlite:///./estore.db"
    OPNAME_SNAPSHOT_CHUNK_SIZE: int = 100
    OPNAME_PAGE_SIZE_DEFAULT: int = 20
    OPNAME_PAGE_SIZE_MAX: int = 200
    OPNAME_ALLOWED_ROLES: str = "ADMIN,STAFF"
    OPNAME_RECONCILE_USER_NAME: str = "StockOpname"
    METRICS_ENABLED: bool = True

    @property
    def opname_allowed_roles(self) -> set[str]:
        return {role.strip().upper() for role in self.OPNAME_ALLOWED_ROLES.split(",") if role.strip()}


settings = Settings()
