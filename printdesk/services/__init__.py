"""PrintDesk - Service Layer"""
