"""
Stockledger Services
Business logic, one class per component, each built on an explicit Session
"""
