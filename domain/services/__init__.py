"""Domain services (business operations behind the API routers)"""
