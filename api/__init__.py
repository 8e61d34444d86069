"""
API Package Initialization

FastAPI surface of the analysis service: batch and single-email analysis
triggers and the Gmail account listing.
"""
