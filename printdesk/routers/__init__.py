"""
PrintDesk - API Routers

All routers are mounted under /api by create_app().
"""
