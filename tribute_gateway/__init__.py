"""
Tributestream Gateway

FastAPI service that forwards site requests to the headless CMS, carrying
the CMS token in an httpOnly session cookie.
"""

__version__ = "1.0.0"
