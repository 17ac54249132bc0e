"""Offline data core of the ZaykaBill point-of-sale client."""
