"""Infrastructure adapters (database, QR rendering)"""
