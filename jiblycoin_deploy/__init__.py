"""
Jiblycoin Deploy
================

Deployment tooling for the Jiblycoin diamond, its facets and the
upgradeable JiblyCoin token proxy.
"""

__version__ = "1.0.0"
