from unittest import TestCase

from qalam.core.errors import NotFoundError
from qalam.services.analytics import (
    BREAKDOWN_DAYS,
    get_like_analytics,
    get_owner_analytics,
    get_post_analytics,
)
from qalam.services.likes import LikeService
from qalam.services.shares import ShareCounter
from qalam.services.views import ViewCounter
from tests.helpers import FakeClock, make_database, make_post, make_user


class AnalyticsTests(TestCase):
    def setUp(self):
        self.database = make_database()
        self.session = self.database.SessionLocal()
        self.owner = make_user(self.session, username="owner")
        self.readers = [make_user(self.session, username=f"reader{i}") for i in range(5)]
        self.post = make_post(self.session, self.owner)
        self.clock = FakeClock()

    def tearDown(self):
        self.session.close()
        self.database.dispose()

    def test_post_analytics_totals_and_uniques(self):
        views = ViewCounter(self.session, clock=self.clock)
        views.record_view(self.post.id, "ipA-uaX")
        views.record_view(self.post.id, "ipB-uaX")
        self.clock.advance(days=2)
        views.record_view(self.post.id, "ipA-uaX")
        likes = LikeService(self.session, clock=self.clock)
        likes.add_like(self.post.id, self.readers[0].id)
        likes.add_like(self.post.id, self.readers[1].id)
        ShareCounter(self.session).record_share(self.post.id)

        analytics = get_post_analytics(self.session, self.post.id, self.owner.id)

        self.assertEqual(analytics.views, 3)
        self.assertEqual(analytics.shares, 1)
        self.assertEqual(analytics.total_likes, 2)
        self.assertEqual(analytics.unique_likers, 2)
        self.assertEqual(analytics.total_view_events, 3)
        self.assertEqual(analytics.unique_viewers, 2)

    def test_post_analytics_hidden_from_non_owner(self):
        with self.assertRaises(NotFoundError):
            get_post_analytics(self.session, self.post.id, self.readers[0].id)

    def test_post_analytics_missing_post(self):
        with self.assertRaises(NotFoundError):
            get_post_analytics(self.session, 31337, self.owner.id)

    def test_like_breakdown_most_recent_day_first(self):
        likes = LikeService(self.session, clock=self.clock)
        for reader in self.readers[:3]:
            likes.add_like(self.post.id, reader.id)
        self.clock.advance(days=1)
        for reader in self.readers[3:]:
            likes.add_like(self.post.id, reader.id)

        analytics = get_like_analytics(self.session, self.post.id)

        self.assertEqual(analytics.total_likes, 5)
        self.assertEqual(
            [(d.date, d.count) for d in analytics.daily_breakdown],
            [("2026-03-02", 2), ("2026-03-01", 3)],
        )

    def test_like_breakdown_capped(self):
        users = [make_user(self.session, username=f"fan{i}") for i in range(BREAKDOWN_DAYS + 5)]
        likes = LikeService(self.session, clock=self.clock)
        for user in users:
            likes.add_like(self.post.id, user.id)
            self.clock.advance(days=1)

        analytics = get_like_analytics(self.session, self.post.id)

        self.assertEqual(analytics.total_likes, BREAKDOWN_DAYS + 5)
        self.assertEqual(len(analytics.daily_breakdown), BREAKDOWN_DAYS)
        self.assertEqual(analytics.daily_breakdown[0].date, "2026-04-04")

    def test_like_breakdown_empty(self):
        analytics = get_like_analytics(self.session, self.post.id)

        self.assertEqual(analytics.total_likes, 0)
        self.assertEqual(analytics.daily_breakdown, [])

    def test_owner_analytics(self):
        second = make_post(self.session, self.owner, title="Second", views=0)
        make_post(self.session, self.readers[0], title="Not mine")
        views = ViewCounter(self.session, clock=self.clock)
        views.record_view(self.post.id, "ipA-uaX")
        views.record_view(second.id, "ipA-uaX")
        views.record_view(second.id, "ipC-uaY")
        LikeService(self.session).add_like(second.id, self.readers[2].id)
        ShareCounter(self.session).record_share(self.post.id)

        totals = get_owner_analytics(self.session, self.owner.id)

        self.assertEqual(totals.total_posts, 2)
        self.assertEqual(totals.total_views, 3)
        self.assertEqual(totals.total_shares, 1)
        self.assertEqual(totals.total_likes, 1)
        self.assertEqual(totals.unique_viewers, 2)

    def test_owner_analytics_without_posts(self):
        totals = get_owner_analytics(self.session, self.readers[4].id)

        self.assertEqual(totals.total_posts, 0)
        self.assertEqual(totals.total_views, 0)
        self.assertEqual(totals.total_likes, 0)
