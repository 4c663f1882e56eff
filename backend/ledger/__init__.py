"""
Inventory ledger & movement engine.

- types:   domain records (stock cells, transactions, batches) and line inputs
- ports:   repository / unit-of-work protocols the engine runs against
- engine:  putaway, batch putaway, remove, move, undo
- batches: edit / undo of a completed putaway batch
- sql:     SQLAlchemy implementation of the ports
- memory:  in-memory implementation of the ports
- views:   read-side queries (stock lookups, history, summaries)
"""
