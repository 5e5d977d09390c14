from __future__ import annotations

import platform
import sys

import requests

from storefront.config import Settings


def run_doctor_checks(settings: Settings) -> list[dict[str, str]]:
    checks: list[dict[str, str]] = []

    checks.append(
        {
            "check": "python_version",
            "status": "ok" if sys.version_info >= (3, 10) else "warn",
            "detail": platform.python_version(),
        }
    )

    checks.append(
        {
            "check": "db_parent",
            "status": "ok" if settings.db_path.parent.exists() else "warn",
            "detail": str(settings.db_path.parent),
        }
    )

    checks.append(
        {
            "check": "shipping",
            "status": "ok" if settings.flat_shipping_fee >= 0 and settings.free_shipping_threshold >= 0 else "warn",
            "detail": (
                f"free above {settings.free_shipping_threshold} {settings.currency}, "
                f"otherwise {settings.flat_shipping_fee} {settings.currency}"
            ),
        }
    )

    try:
        response = requests.get(settings.api_base_url, timeout=settings.api_timeout_sec)
        checks.append(
            {
                "check": "api",
                "status": "ok" if response.status_code < 500 else "warn",
                "detail": f"{settings.api_base_url} HTTP {response.status_code}",
            }
        )
    except requests.RequestException as exc:
        checks.append(
            {
                "check": "api",
                "status": "warn",
                "detail": f"{settings.api_base_url}: {exc.__class__.__name__}",
            }
        )

    return checks
