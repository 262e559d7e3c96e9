"""لایهٔ Core: منطق خالص دامنه، بدون I/O و بدون لاگ."""
