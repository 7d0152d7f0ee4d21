"""
Excel Ledger Verification Script

Checks the Excel order ledger written by the export workers.
Run from project root: python scripts/verify.py
"""

from datetime import datetime

import pandas as pd

from orderdesk.services.excel_manager import ExcelManager

REQUIRED_COLUMNS = ["order_id", "order_type", "customer_name", "items", "total_amount", "order_status"]


def verify_excel() -> bool:
    """Verify ledger integrity after a simulation run."""
    excel_file = ExcelManager.orders_file()

    print("=" * 60)
    print("🔍 EXCEL LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {excel_file}")
    print("=" * 60)

    if not excel_file.exists():
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(excel_file, engine="openpyxl")
    except Exception as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    ok = True
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        ok = False
    else:
        print("\n✅ All required columns present")

    if "order_id" in df.columns:
        duplicates = int(df["order_id"].duplicated().sum())
        if duplicates:
            print(f"⚠️ {duplicates} duplicate order IDs found!")
            ok = False
        else:
            print("✅ No duplicate order IDs")

    if "order_type" in df.columns:
        print("\n🍽️ ORDER TYPES:")
        for order_type, count in df["order_type"].value_counts().items():
            print(f"   {order_type}: {count}")

    if "total_amount" in df.columns and len(df):
        print("\n💰 REVENUE:")
        print(f"   Total: ${df['total_amount'].sum():.2f}")
        print(f"   Average: ${df['total_amount'].mean():.2f}")

    if len(df):
        print("\n📋 RECENT ORDERS:")
        print("-" * 60)
        cols = [c for c in ["order_id", "order_type", "customer_name", "total_amount", "order_status"] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    verify_excel()
