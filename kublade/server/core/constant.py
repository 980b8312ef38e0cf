"""
Server constants.

Static values shared by the application factory and the routers.
"""

PROJECT_NAME = "Kublade API"
API_PREFIX = "/api"
API_DOCS_PREFIX = f"{API_PREFIX}/documentation"
API_VERSION = "1.0.0"

# Cursor pagination page size for list endpoints
PAGE_SIZE = 10
