"""
Excel Order Ledger with Concurrency Control

Every new order is appended as one row to an Excel workbook so the front of
house can work from a spreadsheet. Several Celery workers may write at the
same time; a FileLock next to the workbook serializes them.

Paths are resolved from the settings on each call so tests can point
``DATA_DIRECTORY`` at a temporary directory.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from orderdesk.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """Process-safe Excel ledger of orders."""

    ORDER_COLUMNS = [
        "order_id",
        "user_id",
        "order_type",
        "date_time",
        "customer_name",
        "customer_phone",
        "table_number",
        "delivery_address",
        "items",
        "item_count",
        "order_notes",
        "total_amount",
        "order_status",
        "exported_at",
    ]

    @staticmethod
    def data_dir() -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def orders_file(cls) -> Path:
        return cls.data_dir() / get_settings().excel_filename

    @classmethod
    def orders_lock(cls) -> Path:
        return cls.orders_file().with_name(cls.orders_file().name + ".lock")

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load existing ledger or start an empty one."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                # Keep the unreadable workbook so its rows can be recovered by hand.
                stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
                quarantined = file_path.with_name(f"{file_path.stem}.corrupt-{stamp}{file_path.suffix}")
                file_path.rename(quarantined)
                logger.error(f"Could not read {file_path} ({e}), moved it to {quarantined.name}")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @staticmethod
    def _format_items(items: Any) -> str:
        if not items:
            return ""
        if isinstance(items, str):
            return items
        return "; ".join(
            f"{item.get('quantity', 0)}x {item.get('name', 'Item ' + str(item.get('id')))} @ {item.get('price', 0)}"
            for item in items
        )

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append one order to the ledger under the file lock."""
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        timeout = get_settings().excel_lock_timeout
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(cls.orders_lock()), timeout=timeout):
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(cls.orders_file())

                export_time = datetime.now(timezone.utc).isoformat()
                new_row = {
                    "order_id": order_id,
                    "user_id": order_data.get("user_id"),
                    "order_type": order_data.get("order_type"),
                    "date_time": order_data.get("created_at", export_time),
                    "customer_name": order_data.get("customer_name"),
                    "customer_phone": order_data.get("customer_phone"),
                    "table_number": order_data.get("table_number"),
                    "delivery_address": order_data.get("delivery_address"),
                    "items": cls._format_items(order_data.get("items")),
                    "item_count": order_data.get("item_count", 0),
                    "order_notes": order_data.get("order_notes"),
                    "total_amount": order_data.get("total_amount"),
                    "order_status": order_data.get("order_status"),
                    "exported_at": export_time,
                }

                new_df = pd.DataFrame([new_row], columns=cls.ORDER_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(cls.orders_file()), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({timeout}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Read every ledger row."""
        orders_file = cls.orders_file()
        if not orders_file.exists():
            return []

        try:
            df = pd.read_excel(orders_file, engine="openpyxl")
            return json.loads(df.to_json(orient="records"))
        except Exception as e:
            logger.error(f"Error reading orders: {e}")
            return []

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in [cls.orders_file(), cls.orders_lock()]:
                if f.exists():
                    f.unlink()
            logger.info("Excel ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False
