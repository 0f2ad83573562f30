import os
import tempfile
import threading
from unittest import TestCase

from qalam.core.errors import InvalidIdentifierError, NotFoundError, StoreError
from qalam.db.models.post import Post
from qalam.db.models.post_view import PostView
from qalam.db.session import Database
from qalam.services.views import ViewCounter
from tests.helpers import FakeClock, fail_on_call, make_database, make_post, make_user


class ViewCounterTests(TestCase):
    def setUp(self):
        self.database = make_database()
        self.session = self.database.SessionLocal()
        self.user = make_user(self.session)
        self.post = make_post(self.session, self.user)
        self.clock = FakeClock()
        self.counter = ViewCounter(self.session, clock=self.clock)

    def tearDown(self):
        self.session.close()
        self.database.dispose()

    def _views(self):
        return self.session.query(Post.views).filter(Post.id == self.post.id).scalar()

    def test_first_view_is_counted(self):
        result = self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertTrue(result.counted)
        self.assertEqual(self._views(), 1)
        self.assertEqual(self.session.query(PostView).count(), 1)

    def test_repeat_view_within_window_is_not_counted(self):
        self.assertTrue(self.counter.record_view(self.post.id, "ipA-uaX").counted)
        self.clock.advance(hours=23, minutes=59)

        result = self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertFalse(result.counted)
        self.assertEqual(self._views(), 1)
        self.assertEqual(self.session.query(PostView).count(), 1)

    def test_view_after_window_counts_again(self):
        self.counter.record_view(self.post.id, "ipA-uaX")
        self.clock.advance(hours=24, seconds=1)

        result = self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertTrue(result.counted)
        self.assertEqual(self._views(), 2)

    def test_different_visitors_count_separately(self):
        self.counter.record_view(self.post.id, "ipA-uaX")
        self.counter.record_view(self.post.id, "ipB-uaX")

        self.assertEqual(self._views(), 2)

    def test_same_visitor_on_other_post_counts(self):
        other = make_post(self.session, self.user, title="Other")
        self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertTrue(self.counter.record_view(other.id, "ipA-uaX").counted)

    def test_invalid_ids_rejected_before_query(self):
        for bad in (0, -3, "10", None, True):
            with self.assertRaises(InvalidIdentifierError):
                self.counter.record_view(bad, "ipA-uaX")
        with self.assertRaises(InvalidIdentifierError):
            self.counter.record_view(self.post.id, "  ")
        self.assertEqual(self.session.query(PostView).count(), 0)

    def test_missing_post_raises_not_found(self):
        with self.assertRaises(NotFoundError):
            self.counter.record_view(9999, "ipA-uaX")

    def test_recount_rebuilds_views_from_events(self):
        self.counter.record_view(self.post.id, "ipA-uaX")
        self.counter.record_view(self.post.id, "ipB-uaX")
        self.session.query(Post).filter(Post.id == self.post.id).update({"views": 57})
        self.session.commit()

        total = self.counter.recount(self.post.id)

        self.assertEqual(total, 2)
        self.assertEqual(self._views(), 2)

    def test_recount_missing_post(self):
        with self.assertRaises(NotFoundError):
            self.counter.recount(4242)


class ConcurrentViewTests(TestCase):
    """Racing recorders against a file database, one session per thread."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.database = Database(f"sqlite:///{os.path.join(self.tmpdir.name, 'views.db')}")
        self.database.create_all()
        session = self.database.SessionLocal()
        user = make_user(session)
        self.post_id = make_post(session, user).id
        session.close()

    def tearDown(self):
        self.database.dispose()
        self.tmpdir.cleanup()

    def test_same_visitor_racing_is_counted_once(self):
        results = []
        errors = []
        start = threading.Barrier(6)

        def worker():
            session = self.database.SessionLocal()
            try:
                start.wait()
                results.append(ViewCounter(session).record_view(self.post_id, "ipA-uaX").counted)
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(results.count(True), 1)
        session = self.database.SessionLocal()
        self.assertEqual(session.get(Post, self.post_id).views, 1)
        self.assertEqual(session.query(PostView).count(), 1)
        session.close()


class ViewStoreFailureTests(TestCase):
    def setUp(self):
        self.database = make_database()
        self.session = self.database.SessionLocal()
        self.post = make_post(self.session, make_user(self.session))
        self.counter = ViewCounter(self.session, clock=FakeClock())

    def tearDown(self):
        self.session.close()
        self.database.dispose()

    def test_failure_mid_transaction_rolls_back(self):
        # lock, dedup check, then the counter increment fails
        with fail_on_call(self.session, "execute", 3):
            with self.assertRaises(StoreError):
                self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertEqual(self.session.query(Post.views).filter(Post.id == self.post.id).scalar(), 0)
        self.assertEqual(self.session.query(PostView).count(), 0)

    def test_next_view_after_failure_counts(self):
        with fail_on_call(self.session, "execute", 2):
            with self.assertRaises(StoreError):
                self.counter.record_view(self.post.id, "ipA-uaX")

        self.assertTrue(self.counter.record_view(self.post.id, "ipA-uaX").counted)
        self.assertEqual(self.session.query(Post.views).filter(Post.id == self.post.id).scalar(), 1)
