"""auth/ -- Registration, login, and session gating for ShopGate.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and
sessions/. It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
