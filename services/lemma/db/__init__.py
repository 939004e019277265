"""
Data-access layer for Lemma.

    from lemma.db.database import init_database
    from lemma.db.errors import NotFoundError
"""
