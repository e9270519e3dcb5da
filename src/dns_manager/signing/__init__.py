"""Request signing schemes for the providers that sign requests.

Every function here is pure: timestamps and nonces are passed in, so a fixed
input always yields the same signature.
"""
