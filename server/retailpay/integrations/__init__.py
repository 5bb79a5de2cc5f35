"""
Integration modules

Adapters for external systems the retail platform talks to:
- Payment gateways
"""
