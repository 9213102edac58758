"""
HubGate - Hub-and-Spoke AI Resource Broker

Central hub owning shared model capacity, with tenant spokes attaching
through scoped connections:
- Control Plane: Naming, Model Registry, Connection Broker, Access Policy
- Gateway Plane: Request-time routing, credential substitution, rate limits
- Data Layer: PostgreSQL, Redis
"""

__version__ = "0.1.0"
