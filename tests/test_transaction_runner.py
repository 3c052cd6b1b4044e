import os
import unittest

from sqlalchemy import Integer, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from app.core.errors import ConflictError, NotFoundError
from app.db.transaction import run_in_transaction, transaction


class _Base(DeclarativeBase):
    pass


class _Row(_Base):
    __tablename__ = "_tx_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True)


class TransactionRunnerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        _Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls):
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.query(_Row).delete()
            db.commit()

    def _codes(self):
        with self.SessionLocal() as db:
            return sorted(r.code for r in db.query(_Row).all())

    def test_steps_share_state_and_commit_together(self):
        def first(session, state):
            row = _Row(code="A")
            session.add(row)
            state["first"] = row

        def second(session, state):
            # Earlier steps are flushed, so generated keys are visible here.
            session.add(_Row(code=f"B{state['first'].id}"))

        with self.SessionLocal() as db:
            state = run_in_transaction(db, (first, second), label="test")
        self.assertIn("first", state)
        self.assertEqual(len(self._codes()), 2)

    def test_failing_step_rolls_back_earlier_steps(self):
        def first(session, state):
            session.add(_Row(code="A"))

        def second(session, state):
            raise NotFoundError("Store not found")

        with self.SessionLocal() as db:
            with self.assertRaises(NotFoundError):
                run_in_transaction(db, (first, second), label="test")
        self.assertEqual(self._codes(), [])

    def test_unique_violation_becomes_conflict(self):
        with self.SessionLocal() as db:
            with transaction(db):
                db.add(_Row(code="DUP"))

        with self.SessionLocal() as db:
            with self.assertRaises(ConflictError) as ctx:
                with transaction(db, label="dup", conflict_message="Code already exists"):
                    db.add(_Row(code="OTHER"))
                    db.add(_Row(code="DUP"))
        self.assertEqual(ctx.exception.message, "Code already exists")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(self._codes(), ["DUP"])


if __name__ == "__main__":
    unittest.main()
