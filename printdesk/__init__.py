"""
PrintDesk - Print Fulfillment Backend

FastAPI service tracking print orders from upload through delivery,
with admin statistics and presigned access to order PDFs.
"""

__version__ = "0.1.0"
