"""auth/ -- HTTP Basic Authentication gate for authgate.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/ for
typing. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
