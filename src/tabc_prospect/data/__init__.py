"""
Open-data access and record normalization
"""
