"""auth/ -- Credential verification and session handling for AuthGate.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or web/.
api/ and web/ import from auth/, not the other way around.
"""
