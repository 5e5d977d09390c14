from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_API_URL = "https://wallmasters-backend-2a28e4a6d156.herokuapp.com"


@dataclass(slots=True)
class Settings:
    root_dir: Path
    data_dir: Path
    db_path: Path
    logs_dir: Path
    exports_dir: Path
    api_base_url: str = DEFAULT_API_URL
    api_timeout_sec: float = 15.0
    free_shipping_threshold: Decimal = Decimal("2000")
    flat_shipping_fee: Decimal = Decimal("70")
    currency: str = "EGP"
    country: str = "Egypt"
    payment_method: str = "cash_on_delivery"

    @classmethod
    def load(cls, base_dir: Path | None = None) -> Settings:
        load_dotenv(override=False)

        root_env = os.getenv("STOREFRONT_HOME")
        root_dir = Path(root_env).expanduser().resolve() if root_env else (base_dir or Path.cwd()).resolve()

        data_dir = Path(os.getenv("STOREFRONT_DATA_DIR", root_dir / "data")).expanduser().resolve()
        db_path = Path(os.getenv("STOREFRONT_DB_PATH", data_dir / "storefront.sqlite3")).expanduser().resolve()
        logs_dir = Path(os.getenv("STOREFRONT_LOG_DIR", root_dir / "logs")).expanduser().resolve()
        exports_dir = Path(os.getenv("STOREFRONT_EXPORT_DIR", root_dir / "exports")).expanduser().resolve()

        api_base_url = os.getenv("STOREFRONT_API_URL", DEFAULT_API_URL).rstrip("/")
        api_timeout_sec = float(os.getenv("STOREFRONT_API_TIMEOUT_SEC", "15"))

        # Money settings stay Decimal end to end; floats would drift on the threshold comparison.
        free_shipping_threshold = Decimal(os.getenv("STOREFRONT_FREE_SHIPPING_THRESHOLD", "2000"))
        flat_shipping_fee = Decimal(os.getenv("STOREFRONT_SHIPPING_FEE", "70"))

        return cls(
            root_dir=root_dir,
            data_dir=data_dir,
            db_path=db_path,
            logs_dir=logs_dir,
            exports_dir=exports_dir,
            api_base_url=api_base_url,
            api_timeout_sec=api_timeout_sec,
            free_shipping_threshold=free_shipping_threshold,
            flat_shipping_fee=flat_shipping_fee,
            currency=os.getenv("STOREFRONT_CURRENCY", "EGP"),
            country=os.getenv("STOREFRONT_COUNTRY", "Egypt"),
            payment_method=os.getenv("STOREFRONT_PAYMENT_METHOD", "cash_on_delivery"),
        )

    def ensure_directories(self) -> None:
        for path in [self.root_dir, self.data_dir, self.logs_dir, self.exports_dir]:
            path.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
