"""
Betteh Music CMS - Public site and admin dashboard.

A FastAPI service backed by a single JSON document and an uploads
directory, with bcrypt-hashed admin accounts and signed session cookies.
"""
