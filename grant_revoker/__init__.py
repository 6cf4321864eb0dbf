"""
Grant Revoker - bulk OAuth grant revocation for Google Workspace directories
"""

__version__ = '0.1.0'
