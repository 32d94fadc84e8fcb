# app/utils/money.py


def format_vnd(amount: int) -> str:
    """500000 -> '500.000đ'"""
    return f"{amount:,}đ".replace(",", ".")
