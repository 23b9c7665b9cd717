"""
Healthcare Portal - Backend Package

Credential, session and reset-token core for the hospital / lab
administration portal, plus the organization-scoped consultation workflow.
"""

__version__ = "0.1.0"
