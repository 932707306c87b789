"""
Test fixtures package.

Available fixture modules:
- database: model factories and ledger/progress assertions helpers
- playlist_source: FakePlaylistSource and snapshot builder
"""
