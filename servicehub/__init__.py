"""
ServiceHub client core.

Session state, secure on-device storage and the marketplace API
wrappers behind the ServiceHub mobile client: "clientes" request home
and professional services, "profissionais" browse and bid on them.
"""

__version__ = "0.1.0"
