"""
KB Vault - PDF to knowledge base processing backend.
"""
__version__ = "1.0.0"
