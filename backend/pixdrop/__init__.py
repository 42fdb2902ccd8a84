"""
Pixdrop Backend — Application Package Initializer
==================================================

What: Marks the `pixdrop` directory as a Python package.
Who:  Used by uvicorn (`pixdrop.main:app`), the `pixdrop` console script and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← path params, status codes, bodies
    ├─────────────────────────────────────┤
    │      ImageService (Workflows)       │  ← ingest / delete / read
    ├─────────────────────────────────────┤
    │  Normalizer · Authorizer · IDs      │  ← pure / computational
    ├─────────────────────────────────────┤
    │       ImageStore (Filesystem)       │  ← the only code touching data_root
    └─────────────────────────────────────┘

    There is no database. The two directories under data_root are the index:
    an image exists iff its file exists, a delete token exists iff its link exists.
"""

__version__ = "0.1.0"
