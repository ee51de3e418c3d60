"""Job lifecycle: task execution, outcome ledger, and completion coordination.

One submitted job fans out into a fixed set of arithmetic sub-operations that
run concurrently and report independently.  The coordinator folds their
outcomes into progress and a single terminal status.
"""
