"""auth/ -- Credential hashing and lifecycle for CredVault.

Layer rule: auth/ imports only stdlib, third-party libraries, core/ and kv/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
