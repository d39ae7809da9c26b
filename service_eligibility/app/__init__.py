"""
Eligibility engine application package.
"""
