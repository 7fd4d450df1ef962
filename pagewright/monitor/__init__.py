"""Terminal views of a run — read-only projections of the run report and log.

Modules
-------
renderer
    ``MonitorRenderer`` turns ``RunReport`` and run-log entries into Rich
    renderables.
"""
