"""Board mutation engine, command contracts and document storage.

The pure functions in :mod:`.mutations` own every column/task invariant;
:class:`.engine.BoardService` runs them against the authoritative collection
held in a :class:`.store.DocumentStore`.
"""
