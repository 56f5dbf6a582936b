"""media/ -- Storage for user-uploaded files (profile pictures).

Layer rule: media/ imports only stdlib, third-party libraries, and core/.
api/ imports from media/, not the other way around.
"""
