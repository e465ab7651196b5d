"""
Node Version Dashboard

Polls the Bitnodes crawler API and charts which client versions the
reachable Bitcoin network is running.
"""

__version__ = "1.0.0"
__author__ = "Alex Nguyen"
__description__ = "A polling dashboard for Bitcoin node client-version share"
