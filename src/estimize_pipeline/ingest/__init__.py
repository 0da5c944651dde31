"""Estimize API access.

Holds the shared request rate gate and the HTTP client used to list
companies and fetch their releases.
"""
