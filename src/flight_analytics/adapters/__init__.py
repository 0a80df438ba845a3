"""
Adapter implementations for flight_analytics.

Adapters are concrete implementations of the port interfaces plus the
boundary code that narrows raw payloads into FlightRecords.
They handle the specifics of the API, its payload shapes and caching.
"""
