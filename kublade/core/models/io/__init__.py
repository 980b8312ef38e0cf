"""
I/O models for API requests and responses.

These models define the contract between the API and its clients. They are
separate from the database entities so that internal columns such as
password hashes never leak into responses.
"""
