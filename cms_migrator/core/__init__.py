"""
Core application engine for orchestrating a migration.

`MigrationPipeline` runs the stages of one category against a
`MigrationSession`, handing file downloads to the `DownloadManager`.
"""
