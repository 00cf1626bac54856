"""
TravelTrail CMS backend.

A FastAPI service over MongoDB serving CMS pages, trip and accommodation
listings, admin login, and a relay to the spreadsheet webhook.
"""
