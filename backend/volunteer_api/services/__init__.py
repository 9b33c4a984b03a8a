# Services package init
"""
Volunteer API — Services Layer
===============================

What:  Logic shared by the handler groups, kept out of the route modules.

Service Inventory:
    - auth_service:      password hashing, JWT issue/verify, current-user
                         and admin dependencies
    - records:           add/flush with uniqueness translation, get-or-404
    - file_service:      upload validation and storage (uploads, uploadsfile)
    - notification_hub:  open WebSockets per user; pushes new notifications

Services raise ApiError variants and never build responses; the error
normalizer renders whatever they raise.
"""
