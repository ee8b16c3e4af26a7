"""
e3d_commerce.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Apply storefront rules (stock, pricing, order lifecycle) on top of repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Routers stay thin: they validate input, call one service method, and serialize.
