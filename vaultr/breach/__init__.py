"""Vaultr k-anonymity breach check.

Server side:
  - router.py    - GET /breach proxy handler (fail-open, rate limited)
  - upstream.py  - shared httpx client + upstream URL/header construction
  - responses.py - the four response shapes the endpoint can produce

Client side:
  - client.py    - SHA-1 split, prefix request, local suffix matching
"""
