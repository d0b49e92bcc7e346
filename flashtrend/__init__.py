"""News feed front-end service over the FlashTrend backend."""
