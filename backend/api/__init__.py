"""
Apex Fleet HTTP routers
"""
