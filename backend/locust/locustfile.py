"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Many users racing for few slots
  locust -f locustfile.py --tags throughput   # Cached summary reads
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

Identity is a bearer JWT signed with SECRET_KEY (same default as the app),
so every simulated user gets a distinct user id without any login round trip.
"""

import itertools
import os
import random
from datetime import datetime, timezone, timedelta

import jwt
from locust import HttpUser, task, between, tag, events

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key-change-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
CRON_API_KEY = os.getenv("CRON_API_KEY", "")

ORGANIZER_ID = 1
CONTENTION_CAPACITY = 10

# Shared state
EVENT_IDS = []
CONTENTION_EVENT_ID = None
_user_ids = itertools.count(1000)


def auth_headers(user_id: int) -> dict:
    token = jwt.encode(
        {"sub": str(user_id), "exp": datetime.now(timezone.utc) + timedelta(hours=2)},
        SECRET_KEY,
        algorithm=ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


def future_start(days: int = 1) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contention event will have {CONTENTION_CAPACITY} slots")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - 100 users -> 10 slots, waitlist enabled

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM attendance_records
      WHERE event_id = X AND status IN ('CONFIRMED', 'CHECKED_IN', 'NO_SHOW')
        AND user_id <> 1;
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.user_id = next(_user_ids)
        self.headers = auth_headers(self.user_id)

        global CONTENTION_EVENT_ID
        if not CONTENTION_EVENT_ID:
            resp = self.client.post(
                "/api/v1/events/",
                json={
                    "title": "Contention Test Event",
                    "start_time": future_start(),
                    "max_attendees": CONTENTION_CAPACITY,
                    "waitlist_enabled": True,
                },
                headers=auth_headers(ORGANIZER_ID),
            )
            if resp.status_code == 201:
                CONTENTION_EVENT_ID = resp.json()["id"]
                print(f"\nCreated event {CONTENTION_EVENT_ID} with {CONTENTION_CAPACITY} slots\n")

    @tag("contention")
    @task(3)
    def join(self):
        """Everyone races for the same slots; losers land on the waitlist."""
        if not CONTENTION_EVENT_ID:
            return
        with self.client.post(
            f"/api/v1/events/{CONTENTION_EVENT_ID}/rsvp/",
            headers=self.headers,
            name="/api/v1/events/{id}/rsvp [join]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            elif resp.status_code == 503:
                resp.failure("Transaction retries exhausted")
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def leave(self):
        """Leaving frees a slot and promotes the oldest waiter in the same transaction."""
        if not CONTENTION_EVENT_ID:
            return
        with self.client.delete(
            f"/api/v1/events/{CONTENTION_EVENT_ID}/rsvp/",
            headers=self.headers,
            name="/api/v1/events/{id}/rsvp [leave]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - summary cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis (REDIS_ENABLED=false), run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def summary_cached(self):
        event_id = CONTENTION_EVENT_ID or (random.choice(EVENT_IDS) if EVENT_IDS else None)
        if event_id:
            self.client.get(
                f"/api/v1/events/{event_id}/rsvp/summary",
                name="/api/v1/events/{id}/rsvp/summary [cached]",
            )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash and must return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers(next(_user_ids))

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post("/api/v1/events/999999/rsvp/", headers=self.headers, catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_capacity(self):
        with self.client.post(
            "/api/v1/events/",
            json={"title": "Bad", "start_time": future_start(), "max_attendees": 0},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def out_of_range_rating(self):
        event_id = CONTENTION_EVENT_ID or 1
        with self.client.post(
            f"/api/v1/events/{event_id}/feedback/",
            json={"rating": 9},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [404, 422])

    @tag("edge")
    @task
    def non_organizer_override(self):
        event_id = CONTENTION_EVENT_ID or 1
        with self.client.post(
            f"/api/v1/events/{event_id}/attendance/{ORGANIZER_ID}/cancel",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [403, 404])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/events/1/rsvp/", catch_response=True) as resp:
            self._expect(resp, [401])


class OrganizerUser(HttpUser):
    """
    TEST 4: Organizer workload alongside attendees

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers(ORGANIZER_ID)

    @task(5)
    def dashboard(self):
        if CONTENTION_EVENT_ID:
            self.client.get(
                f"/api/v1/events/{CONTENTION_EVENT_ID}/attendance/",
                headers=self.headers,
                name="/api/v1/events/{id}/attendance",
            )

    @task(2)
    def sweep(self):
        if CONTENTION_EVENT_ID:
            self.client.post(
                f"/api/v1/events/{CONTENTION_EVENT_ID}/attendance/sweep",
                headers=self.headers,
                name="/api/v1/events/{id}/attendance/sweep",
            )

    @task(1)
    def scheduled_sweep(self):
        if CRON_API_KEY:
            self.client.post(
                "/api/v1/cron/sweep-waitlists",
                json={"hours_ahead": 48},
                headers={"X-API-Key": CRON_API_KEY},
            )

    @task(1)
    def create_event(self):
        resp = self.client.post(
            "/api/v1/events/",
            json={
                "title": f"Event {random.randint(1, 10000)}",
                "start_time": future_start(random.randint(1, 90)),
                "max_attendees": random.randint(10, 500),
            },
            headers=self.headers,
        )
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
