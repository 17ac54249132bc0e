"""Store, sync, ledger and report services plus the local HTTP surface."""
