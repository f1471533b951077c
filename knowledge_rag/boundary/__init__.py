"""
Boundary layer: durable chunk records (db) and the vector index (vdb).
"""
