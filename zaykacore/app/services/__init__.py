"""Services implementing notification sync, the credit ledger and reports."""
