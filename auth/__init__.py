"""auth/ -- Session token lifecycle for SessionGate.

Credential store, password verifier, token codec, session manager and the
request-side auth gate.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
