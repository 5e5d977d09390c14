from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from storefront.models import OrderRecord


def _order_rows(orders: list[OrderRecord]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for order in orders:
        created_at = order.created_at.isoformat() if order.created_at else None
        address = order.shipping_address
        for product in order.products:
            rows.append(
                {
                    "order_id": order.order_id,
                    "created_at": created_at,
                    "order_status": order.order_status,
                    "payment_status": order.payment_status,
                    "payment_method": order.payment_method,
                    "order_total": float(order.total_price),
                    "product_id": product.product_id,
                    "name": product.name,
                    "size": product.size,
                    "quantity": product.quantity,
                    "price": float(product.price),
                    "line_total": float(product.price * product.quantity),
                    "city": address.get("city"),
                }
            )
    return rows


def export_orders(orders: list[OrderRecord], formats: list[str], out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(_order_rows(orders))

    created_files: list[Path] = []
    if "csv" in formats:
        csv_path = (out_dir / "orders_export.csv").resolve()
        df.to_csv(csv_path, index=False, encoding="utf-8-sig")
        created_files.append(csv_path)

    if "xlsx" in formats:
        xlsx_path = (out_dir / "orders_export.xlsx").resolve()
        with pd.ExcelWriter(xlsx_path, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="orders")
        created_files.append(xlsx_path)

    return created_files
