# Routes package init
"""
Pixdrop Backend — API Routes Package
=====================================

Route Inventory:
    - images.py:  GET    /image/{id}
                  POST   /image/{api_key}
                  DELETE /image/{api_key}/{delete_token}
    - health.py:  GET    /health

Routes stay thin: extract parameters, call ImageService, shape the response.
"""
