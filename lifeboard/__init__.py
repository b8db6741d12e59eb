# Lifeboard: ordered project/task persistence with status-transition tracking
#
# Components:
#   schema.py      - Data model (Project, Task, StatusTransition, UNSET)
#   errors.py      - ValidationError, NotFound, StoreError, ConfigError
#   validation.py  - Field constraint tables and typed request structs
#   store.py       - SQLite store handle, transactions, migrations
#   mappers.py     - Row -> entity conversion
#   projects.py    - Project repository (CRUD, reorder, archive)
#   tasks.py       - Task repository (lanes, partial updates, transitions)
#   transitions.py - Append-only task status log
#   events.py      - Task events, emitter and delivery sinks
#   service.py     - Caller boundary and composition root
#   config.py      - YAML/env configuration
#   server.py      - Flask JSON API
