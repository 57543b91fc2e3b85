"""CoreOS HR service package.

Organized by feature modules (pto_types, pto_requests, blackouts, route_permissions, ...)
with a thin Flask controller layer over service/repository layers.
"""
