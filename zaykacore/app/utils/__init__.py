"""Money, time, locking and export helpers."""
