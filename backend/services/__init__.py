"""
Apex Fleet Services
Auto-compounding, vault transport and engine wiring
"""
