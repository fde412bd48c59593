from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path("data")
    products_filename: str = "product.json"
    orders_filename: str = "orders.json"
    images_dirname: str = "images"
    images_url_prefix: str = "/images"
    cors_origins: List[str] = ["*"]
    port: int = 5000
    log_level: str = "INFO"
    debug: bool = False
    # Per-observer buffer before events start being dropped for it
    subscriber_queue_size: int = 100

    class Config:
        env_file = ".env"

    @property
    def products_path(self) -> Path:
        return self.data_dir / self.products_filename

    @property
    def orders_path(self) -> Path:
        return self.data_dir / self.orders_filename

    @property
    def images_dir(self) -> Path:
        return self.data_dir / self.images_dirname

settings = Settings()
