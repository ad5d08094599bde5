"""auth/ -- Authentication package for MealPlanner.

Password hashing, session tokens, the user store, the request gate and the
register/login/logout flows.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, usage/, or preferences/.
api/ imports from auth/, not the other way around.
"""
