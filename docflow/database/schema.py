from docflow.database.connection import Database

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        filename TEXT NOT NULL,
        status TEXT NOT NULL,
        content_ref TEXT,
        recognition_result JSONB,
        extracted_fields JSONB,
        validation_errors JSONB,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS document_payloads (
        document_id TEXT PRIMARY KEY REFERENCES documents (id),
        content BYTEA NOT NULL
    )
    """,
)


def apply_schema(database: Database) -> None:
    """Create the record store tables if they do not exist yet."""
    with database.connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)
        conn.commit()
