# Services package init
"""
Pixdrop Backend — Services Layer
=================================

Service Inventory:
    - identifiers:    random 128-bit image IDs and delete tokens
    - normalizer:     ImageNormalizer (decode, orientation policy, fill, JPEG)
    - authorizer:     ApiKeyAuthorizer (shared-secret allow/deny)
    - storage:        ImageStore (the only code touching the data directory)
    - image_service:  ImageService (ingest / delete / read workflows)
"""
