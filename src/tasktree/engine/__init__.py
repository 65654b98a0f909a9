"""Task tree engine: layout, entity store, mutations and selection.

Reducers in :mod:`.mutations` and :mod:`.selection` operate on immutable
:class:`~.state.AppState` values; :class:`~.board.TaskBoard` owns the
current value and is what most callers use.
"""
