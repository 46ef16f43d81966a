"""
Coinbase API Integration

Modular clients for the Coinbase v2 API:
- Authentication (CDP JWT signing)
- Request execution and response decoding
- Account listing
- Transaction history and net invested
- Spot prices
"""
