"""
Healthcare Portal - Consultations Package

Hospital consultation requests and the appointments created when a request
is accepted. All access goes through the organization scope guard.
"""
