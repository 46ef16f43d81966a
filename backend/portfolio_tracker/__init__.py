"""
Coinbase Portfolio Tracker

Reads account balances from the Coinbase v2 API, folds them into one
entry per currency, prices each entry against a quote currency and
attaches the net amount invested from the transaction history.
"""
