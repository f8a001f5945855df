"""
Quick Market Pricing Engine

Live pricing and odds for short-lived (15-minute) UP/DOWN markets on a
crypto asset's spot price.

Entry points:

1. CONSOLE RUNNER (quickmarket.main)
   - python -m quickmarket.main [market_id]
   - Polls CoinGecko for one market and logs odds until the timer ends

2. HTTP API (quickmarket.api.server)
   - python -m quickmarket.api.server
   - Activate/deactivate a market view and read its live snapshot

Key Modules:
- quickmarket.market: series buffer, odds, countdown, poller, session
- quickmarket.clients: CoinGecko price client
- quickmarket.utils: logging and display formatting
"""
