"""AnbarYar: هستهٔ ورود، ترمیم و گزارش‌گیری شمارش موجودی داروخانه."""

__version__ = "1.0.0"
