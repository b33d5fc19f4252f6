from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.conf import settings
from django.core import signing
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from socialgraph.exceptions import (
    AlreadyFollowing,
    Conflict,
    Expired,
    IdentityNotFound,
    InvalidSignature,
    InvalidState,
    InvalidStatus,
    Malformed,
    NotFollowing,
    RequestAlreadyPending,
    RequestNotFound,
    SelfFollow,
    SessionNotFound,
)
from socialgraph.ledger import NotificationLedger
from socialgraph.models import Follow, Identity, Notification, Session
from socialgraph.relationships import RelationshipStateMachine
from socialgraph.sessions import SessionStore
from socialgraph.tokens import ACCESS, REFRESH, TokenIssuer, parse_duration

PASSWORD = "secret123"


def make_identity(username, **extra):
    return Identity.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=PASSWORD,
        first_name=extra.pop("first_name", username.capitalize()),
        last_name=extra.pop("last_name", "Tester"),
        **extra,
    )


def signed_in_client(identity):
    """Return an APIClient holding the identity's bearer token and refresh cookie."""
    client = APIClient()
    resp = client.post(
        "/api/users/signin",
        {"email": identity.email, "password": PASSWORD},
        format="json",
    )
    assert resp.status_code == status.HTTP_200_OK, resp.data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['token']}")
    return client


def signed_cookie(value):
    """Sign ``value`` the way the refresh cookie is signed."""
    key = settings.REFRESH_COOKIE_NAME
    return signing.get_cookie_signer(salt=key + settings.REFRESH_COOKIE_SALT).sign(value)


# Durations

class ParseDurationTests(TestCase):
    def test_accepts_seconds_products_and_units(self):
        self.assertEqual(parse_duration("900"), timedelta(seconds=900))
        self.assertEqual(parse_duration("60*15"), timedelta(minutes=15))
        self.assertEqual(parse_duration("60 * 60 * 24"), timedelta(days=1))
        self.assertEqual(parse_duration("15m"), timedelta(minutes=15))
        self.assertEqual(parse_duration("1h30m"), timedelta(minutes=90))
        self.assertEqual(parse_duration("7d"), timedelta(days=7))
        self.assertEqual(parse_duration(30), timedelta(seconds=30))
        self.assertEqual(parse_duration(timedelta(hours=2)), timedelta(hours=2))

    def test_rejects_anything_that_is_not_a_duration_literal(self):
        for value in ["__import__('os').getpid()", "60+15", "15 minutes", "", "1.5h", None, True]:
            with self.subTest(value=value):
                with self.assertRaises(ImproperlyConfigured):
                    parse_duration(value)

    def test_rejects_zero(self):
        with self.assertRaises(ImproperlyConfigured):
            parse_duration("0")

    def test_rejects_durations_out_of_range(self):
        for value in ["9" * 20, "99999999999*99999999", "9" * 12 + "w", 10 ** 20]:
            with self.subTest(value=value):
                with self.assertRaises(ImproperlyConfigured):
                    parse_duration(value)


# TokenIssuer

class TokenIssuerTests(TestCase):
    def setUp(self):
        self.issuer = TokenIssuer()
        self.identity = make_identity("tokenuser")

    def test_issue_then_verify_returns_subject(self):
        token = self.issuer.issue(self.identity.pk, timedelta(minutes=5))
        self.assertEqual(self.issuer.verify(token), str(self.identity.pk))

    def test_tokens_minted_together_are_distinct(self):
        first = self.issuer.issue(self.identity.pk, timedelta(minutes=5), REFRESH)
        second = self.issuer.issue(self.identity.pk, timedelta(minutes=5), REFRESH)
        self.assertNotEqual(first, second)

    def test_expired_token(self):
        token = self.issuer.issue(self.identity.pk, timedelta(seconds=-60))
        with self.assertRaises(Expired):
            self.issuer.verify(token)

    def test_tampered_signature(self):
        token = self.issuer.issue(self.identity.pk, timedelta(minutes=5))
        header, payload, signature = token.split(".")
        swapped = "A" if signature[0] != "A" else "B"
        tampered = ".".join([header, payload, swapped + signature[1:]])
        with self.assertRaises(InvalidSignature):
            self.issuer.verify(tampered)

    def test_token_signed_with_another_secret(self):
        foreign = TokenIssuer(secret="someone-elses-secret").issue(self.identity.pk, timedelta(minutes=5))
        with self.assertRaises(InvalidSignature):
            self.issuer.verify(foreign)

    def test_malformed_tokens(self):
        for token in ["", "not-a-token", "a.b.c", None]:
            with self.subTest(token=token):
                with self.assertRaises(Malformed):
                    self.issuer.verify(token)

    def test_refresh_token_is_not_an_access_token(self):
        token = self.issuer.issue(self.identity.pk, timedelta(minutes=5), REFRESH)
        with self.assertRaises(Malformed):
            self.issuer.verify(token, ACCESS)
        self.assertEqual(self.issuer.verify(token, REFRESH), str(self.identity.pk))


# SessionStore

class SessionStoreTests(TestCase):
    def setUp(self):
        self.store = SessionStore()
        self.identity = make_identity("sessionuser")

    def test_create_session_appends_per_device(self):
        first = self.store.create_session(self.identity)
        second = self.store.create_session(self.identity)
        values = [s.refresh_token for s in self.store.sessions_for(self.identity)]
        self.assertEqual(values, [first, second])

    def test_rotation_is_single_use(self):
        r0 = self.store.create_session(self.identity)

        r1, access = self.store.rotate(self.identity.pk, r0)
        self.assertNotEqual(r0, r1)
        self.assertEqual(TokenIssuer().verify(access), str(self.identity.pk))

        with self.assertRaises(SessionNotFound):
            self.store.rotate(self.identity.pk, r0)

        r2, _ = self.store.rotate(self.identity.pk, r1)
        values = [s.refresh_token for s in self.store.sessions_for(self.identity)]
        self.assertEqual(values, [r2])

    def test_rotation_rejects_other_identity(self):
        other = make_identity("otheruser")
        r0 = self.store.create_session(self.identity)
        with self.assertRaises(SessionNotFound):
            self.store.rotate(other.pk, r0)
        self.assertEqual(len(self.store.sessions_for(self.identity)), 1)

    def test_rotation_only_touches_presented_session(self):
        laptop = self.store.create_session(self.identity)
        phone = self.store.create_session(self.identity)
        new_laptop, _ = self.store.rotate(self.identity.pk, laptop)
        values = {s.refresh_token for s in self.store.sessions_for(self.identity)}
        self.assertEqual(values, {phone, new_laptop})

    def test_revoke_is_idempotent(self):
        r0 = self.store.create_session(self.identity)
        self.store.revoke(self.identity, r0)
        self.store.revoke(self.identity, r0)
        self.store.revoke(self.identity, "never-issued")
        self.assertEqual(self.store.sessions_for(self.identity), [])

    def test_refresh_verifies_and_rotates(self):
        r0 = self.store.create_session(self.identity)
        identity, r1, access = self.store.refresh(r0)
        self.assertEqual(identity, self.identity)
        self.assertTrue(Session.objects.filter(refresh_token=r1).exists())
        self.assertFalse(Session.objects.filter(refresh_token=r0).exists())

    def test_refresh_rejects_expired_refresh_token(self):
        expired = TokenIssuer().issue(self.identity.pk, timedelta(seconds=-60), REFRESH)
        with self.assertRaises(Expired):
            self.store.refresh(expired)

    def test_refresh_rejects_deactivated_identity(self):
        r0 = self.store.create_session(self.identity)
        self.identity.is_active = False
        self.identity.save(update_fields=["is_active"])

        with self.assertRaises(IdentityNotFound):
            self.store.refresh(r0)
        values = [s.refresh_token for s in self.store.sessions_for(self.identity)]
        self.assertEqual(values, [r0])

    def test_expired_sessions_are_pruned_on_create(self):
        past = timezone.now() - timedelta(days=60)
        Session.objects.create(
            identity=self.identity,
            refresh_token="old-device",
            issued_at=past,
            expires_at=past + timedelta(days=30),
        )
        self.store.create_session(self.identity)
        self.assertFalse(Session.objects.filter(refresh_token="old-device").exists())
        self.assertEqual(Session.objects.filter(identity=self.identity).count(), 1)

    @override_settings(MAX_SESSIONS_PER_IDENTITY=2)
    def test_session_cap_evicts_oldest(self):
        first = self.store.create_session(self.identity)
        second = self.store.create_session(self.identity)
        third = self.store.create_session(self.identity)
        values = [s.refresh_token for s in self.store.sessions_for(self.identity)]
        self.assertNotIn(first, values)
        self.assertEqual(values, [second, third])


# NotificationLedger

class NotificationLedgerTests(TestCase):
    def setUp(self):
        self.ledger = NotificationLedger()
        self.alice = make_identity("alice")
        self.bob = make_identity("bob")

    def test_inbox_keeps_arrival_order(self):
        first = self.ledger.append(self.alice, self.bob, Notification.LIKE)
        second = self.ledger.append(self.alice, self.bob, Notification.LIKE)
        third = self.ledger.append(self.alice, self.bob, Notification.FOLLOW_REQUEST, status=Notification.PENDING)
        self.assertEqual(list(self.ledger.inbox(self.bob)), [first, second, third])
        self.assertEqual(list(self.ledger.inbox(self.alice)), [])

    def test_request_for_only_finds_requests_addressed_to_receiver(self):
        request = self.ledger.append(self.alice, self.bob, Notification.FOLLOW_REQUEST, status=Notification.PENDING)
        self.assertEqual(self.ledger.request_for(self.bob, request.pk), request)
        with self.assertRaises(RequestNotFound):
            self.ledger.request_for(self.alice, request.pk)
        with self.assertRaises(RequestNotFound):
            self.ledger.request_for(self.bob, "not-a-number")

    def test_storage_refuses_second_pending_request_for_pair(self):
        self.ledger.append(self.alice, self.bob, Notification.FOLLOW_REQUEST, status=Notification.PENDING)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Notification.objects.create(
                    sender=self.alice,
                    receiver=self.bob,
                    type=Notification.FOLLOW_REQUEST,
                    status=Notification.PENDING,
                )

    def test_resolve_on_stale_copy_after_other_responder_is_invalid_state(self):
        request = self.ledger.append(self.alice, self.bob, Notification.FOLLOW_REQUEST, status=Notification.PENDING)
        stale = Notification.objects.get(pk=request.pk)

        self.ledger.resolve(request, Notification.ACCEPTED)
        with self.assertRaises(InvalidState):
            self.ledger.resolve(stale, Notification.REJECTED)

        request.refresh_from_db()
        self.assertEqual(request.status, Notification.ACCEPTED)
        self.assertEqual(request.version, 1)

    def test_resolve_with_outdated_version_is_conflict(self):
        request = self.ledger.append(self.alice, self.bob, Notification.FOLLOW_REQUEST, status=Notification.PENDING)
        Notification.objects.filter(pk=request.pk).update(version=5)
        with self.assertRaises(Conflict):
            self.ledger.resolve(request, Notification.ACCEPTED)


# RelationshipStateMachine

class RelationshipStateMachineTests(TestCase):
    def setUp(self):
        self.machine = RelationshipStateMachine()
        self.alice = make_identity("alice")
        self.bob = make_identity("bob")

    def _following(self, identity):
        return set(identity.following.values_list("pk", flat=True))

    def _followers(self, identity):
        return set(identity.followers.values_list("pk", flat=True))

    def test_follow_self_is_rejected(self):
        with self.assertRaises(SelfFollow):
            self.machine.follow(self.alice, self.alice)
        self.assertFalse(Notification.objects.exists())

    def test_follow_creates_pending_request_and_no_edge(self):
        request = self.machine.follow(self.alice, self.bob)
        self.assertEqual(request.sender, self.alice)
        self.assertEqual(request.receiver, self.bob)
        self.assertEqual(request.type, Notification.FOLLOW_REQUEST)
        self.assertEqual(request.status, Notification.PENDING)
        self.assertEqual(list(NotificationLedger().inbox(self.bob)), [request])
        self.assertFalse(Follow.objects.exists())

    def test_second_follow_while_pending(self):
        self.machine.follow(self.alice, self.bob)
        with self.assertRaises(RequestAlreadyPending):
            self.machine.follow(self.alice, self.bob)
        self.assertEqual(Notification.objects.count(), 1)

    def test_concurrent_follow_that_passed_the_check_is_still_refused(self):
        self.machine.follow(self.alice, self.bob)
        with patch.object(NotificationLedger, "pending_request", return_value=None):
            with self.assertRaises(RequestAlreadyPending):
                self.machine.follow(self.alice, self.bob)
        self.assertEqual(Notification.objects.count(), 1)

    def test_accept_creates_symmetric_edge_and_notice(self):
        request = self.machine.follow(self.alice, self.bob)
        self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)

        request.refresh_from_db()
        self.assertEqual(request.status, Notification.ACCEPTED)
        self.assertEqual(self._following(self.alice), {self.bob.pk})
        self.assertEqual(self._followers(self.bob), {self.alice.pk})
        self.assertEqual(self._following(self.bob), set())

        notice = NotificationLedger().inbox(self.alice).get()
        self.assertEqual(notice.type, Notification.ACCEPTED_REQUEST)
        self.assertEqual(notice.sender, self.bob)
        self.assertIsNone(notice.status)

        with self.assertRaises(InvalidState):
            self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)

    def test_reject_leaves_no_edge_and_is_final(self):
        request = self.machine.follow(self.alice, self.bob)
        self.machine.respond(self.bob, request.pk, Notification.REJECTED)

        request.refresh_from_db()
        self.assertEqual(request.status, Notification.REJECTED)
        self.assertFalse(Follow.objects.exists())
        self.assertFalse(NotificationLedger().inbox(self.alice).exists())

        with self.assertRaises(InvalidState):
            self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)

    def test_follow_again_after_rejection(self):
        first = self.machine.follow(self.alice, self.bob)
        self.machine.respond(self.bob, first.pk, Notification.REJECTED)
        second = self.machine.follow(self.alice, self.bob)
        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(second.status, Notification.PENDING)

    def test_only_receiver_can_respond(self):
        request = self.machine.follow(self.alice, self.bob)
        with self.assertRaises(RequestNotFound):
            self.machine.respond(self.alice, request.pk, Notification.ACCEPTED)

    def test_respond_requires_a_decision(self):
        request = self.machine.follow(self.alice, self.bob)
        for decision in ["pending", "maybe", None]:
            with self.subTest(decision=decision):
                with self.assertRaises(InvalidStatus):
                    self.machine.respond(self.bob, request.pk, decision)

    def test_follow_when_already_following(self):
        request = self.machine.follow(self.alice, self.bob)
        self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)
        with self.assertRaises(AlreadyFollowing):
            self.machine.follow(self.alice, self.bob)

    def test_unfollow_is_inverse_of_accepted_follow(self):
        carol = make_identity("carol")
        existing = self.machine.follow(carol, self.bob)
        self.machine.respond(self.bob, existing.pk, Notification.ACCEPTED)

        before = (
            self._following(self.alice), self._followers(self.alice),
            self._following(self.bob), self._followers(self.bob),
        )

        request = self.machine.follow(self.alice, self.bob)
        self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)
        self.machine.unfollow(self.alice, self.bob)

        after = (
            self._following(self.alice), self._followers(self.alice),
            self._following(self.bob), self._followers(self.bob),
        )
        self.assertEqual(before, after)

    def test_unfollow_when_not_following(self):
        with self.assertRaises(NotFollowing):
            self.machine.unfollow(self.alice, self.bob)

    def test_relationship(self):
        self.assertEqual(self.machine.relationship(self.alice, self.alice), "self")
        self.assertEqual(self.machine.relationship(self.alice, self.bob), "none")
        request = self.machine.follow(self.alice, self.bob)
        self.assertEqual(self.machine.relationship(self.alice, self.bob), "pending")
        self.machine.respond(self.bob, request.pk, Notification.ACCEPTED)
        self.assertEqual(self.machine.relationship(self.alice, self.bob), "following")
        self.assertEqual(self.machine.relationship(self.bob, self.alice), "none")


# Signup / signin

class SignupTests(APITestCase):
    def test_signup_returns_token_and_sets_refresh_cookie(self):
        data = {
            "name": "Alice",
            "last_name": "Smith",
            "username": "alice",
            "email": "alice@example.com",
            "password": "secret",
        }
        resp = self.client.post("/api/users/signup", data, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["success"])

        identity = Identity.objects.get(username="alice")
        self.assertEqual(TokenIssuer().verify(resp.data["token"]), str(identity.pk))
        self.assertTrue(identity.check_password("secret"))

        cookie = resp.cookies[settings.REFRESH_COOKIE_NAME]
        self.assertTrue(cookie["httponly"])
        self.assertEqual(cookie["samesite"], "None")
        self.assertEqual(Session.objects.filter(identity=identity).count(), 1)

    def test_missing_fields_reported_once(self):
        resp = self.client.post("/api/users/signup", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"errors": [{"error": "Required fields are missing or empty"}]})

    def test_every_violation_is_reported_together(self):
        data = {
            "name": "Al1ce",
            "last_name": "Sm!th",
            "username": "a$",
            "email": "not-an-email",
            "password": "abc",
        }
        resp = self.client.post("/api/users/signup", data, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        messages = [e["error"] for e in resp.data["errors"]]
        self.assertIn("Invalid data type in Name. Expected string without special characters or numbers.", messages)
        self.assertIn("Invalid data type in Last Name. Expected string without special characters or numbers.", messages)
        self.assertIn("Invalid data type in Username. Expected string without special characters.", messages)
        self.assertIn("Username must be at least 4 characters", messages)
        self.assertIn("Invalid data type in E-Mail. Expected string with a valid E-Mail format.", messages)
        self.assertIn("Password must be at least 4 characters", messages)
        self.assertFalse(Identity.objects.exists())

    def test_duplicate_email_and_username(self):
        make_identity("alice")
        data = {
            "name": "Alice",
            "last_name": "Again",
            "username": "alice",
            "email": "ALICE@example.com",
            "password": "secret",
        }
        resp = self.client.post("/api/users/signup", data, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        messages = [e["error"] for e in resp.data["errors"]]
        self.assertIn("The E-Mail is already in use", messages)
        self.assertIn("The Username is already in use", messages)
        self.assertEqual(Identity.objects.count(), 1)


class SigninTests(APITestCase):
    def setUp(self):
        self.alice = make_identity("alice")

    def test_signin_creates_session(self):
        resp = self.client.post(
            "/api/users/signin",
            {"email": "alice@example.com", "password": PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(settings.REFRESH_COOKIE_NAME, resp.cookies)
        self.assertEqual(Session.objects.filter(identity=self.alice).count(), 1)

    def test_each_device_gets_its_own_session(self):
        signed_in_client(self.alice)
        signed_in_client(self.alice)
        self.assertEqual(Session.objects.filter(identity=self.alice).count(), 2)

    def test_wrong_password(self):
        resp = self.client.post(
            "/api/users/signin",
            {"email": "alice@example.com", "password": "wrong-password"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn("message", resp.data)
        self.assertNotIn(settings.REFRESH_COOKIE_NAME, resp.cookies)
        self.assertFalse(Session.objects.exists())

    def test_unknown_email(self):
        resp = self.client.post(
            "/api/users/signin",
            {"email": "nobody@example.com", "password": PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_form(self):
        resp = self.client.post("/api/users/signin", {"email": "bad", "password": "1"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        messages = [e["error"] for e in resp.data["errors"]]
        self.assertEqual(messages, ["E-Mail is not valid", "Password must be at least 4 characters"])


# Refresh and logout

class RefreshTokenTests(APITestCase):
    def setUp(self):
        self.alice = make_identity("alice")
        self.client = signed_in_client(self.alice)

    def test_refresh_rotates_session(self):
        r0 = Session.objects.get(identity=self.alice).refresh_token

        resp = self.client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(TokenIssuer().verify(resp.data["token"]), str(self.alice.pk))

        sessions = list(Session.objects.filter(identity=self.alice))
        self.assertEqual(len(sessions), 1)
        self.assertNotEqual(sessions[0].refresh_token, r0)

        # the old cookie value is spent
        replay = APIClient()
        replay.cookies[settings.REFRESH_COOKIE_NAME] = signed_cookie(r0)
        resp = replay.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

        # the rotated cookie held by the client still works
        resp = self.client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_refresh_without_cookie(self):
        resp = APIClient().post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_unsigned_cookie(self):
        r0 = Session.objects.get(identity=self.alice).refresh_token
        client = APIClient()
        client.cookies[settings.REFRESH_COOKIE_NAME] = r0
        resp = client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_expired_token(self):
        expired = TokenIssuer().issue(self.alice.pk, timedelta(seconds=-60), REFRESH)
        client = APIClient()
        client.cookies[settings.REFRESH_COOKIE_NAME] = signed_cookie(expired)
        resp = client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data["message"], "Unauthorized: Token expired")

    def test_refresh_for_deleted_identity(self):
        r0 = Session.objects.get(identity=self.alice).refresh_token
        self.alice.delete()
        client = APIClient()
        client.cookies[settings.REFRESH_COOKIE_NAME] = signed_cookie(r0)
        resp = client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_refresh_for_deactivated_identity(self):
        Identity.objects.filter(pk=self.alice.pk).update(is_active=False)
        resp = self.client.post("/api/users/refreshToken")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertNotIn("token", resp.data)
        self.assertEqual(Session.objects.filter(identity=self.alice).count(), 1)


class LogoutTests(APITestCase):
    def setUp(self):
        self.alice = make_identity("alice")
        self.client = signed_in_client(self.alice)

    def test_logout_revokes_session_and_clears_cookie(self):
        resp = self.client.get("/api/users/logout")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.cookies[settings.REFRESH_COOKIE_NAME].value, "")
        self.assertFalse(Session.objects.filter(identity=self.alice).exists())

    def test_logout_with_unknown_session_still_succeeds(self):
        self.client.cookies[settings.REFRESH_COOKIE_NAME] = signed_cookie("no-such-session")
        resp = self.client.get("/api/users/logout")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.cookies[settings.REFRESH_COOKIE_NAME].value, "")
        self.assertEqual(Session.objects.filter(identity=self.alice).count(), 1)

    def test_logout_only_ends_this_device(self):
        signed_in_client(self.alice)
        self.client.get("/api/users/logout")
        self.assertEqual(Session.objects.filter(identity=self.alice).count(), 1)


# AuthGate

class BearerCredentialCheckTests(APITestCase):
    def setUp(self):
        self.alice = make_identity("alice")
        self.client = signed_in_client(self.alice)

    def test_valid_credentials(self):
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["username"], "alice")
        self.assertEqual(resp.data["email"], "alice@example.com")

    def test_missing_bearer(self):
        self.client.credentials()
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn("Bearer", resp["WWW-Authenticate"])

    def test_missing_refresh_cookie(self):
        del self.client.cookies[settings.REFRESH_COOKIE_NAME]
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_forged_refresh_cookie(self):
        self.client.cookies[settings.REFRESH_COOKIE_NAME] = "forged:value"
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_expired_access_token(self):
        expired = TokenIssuer().issue(self.alice.pk, timedelta(seconds=-60))
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {expired}")
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_cannot_be_used_as_bearer(self):
        refresh_value = Session.objects.get(identity=self.alice).refresh_token
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh_value}")
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_subject_without_identity(self):
        self.alice.delete()
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_access_token_outlives_logout_by_default(self):
        cookie = self.client.cookies[settings.REFRESH_COOKIE_NAME].value
        self.client.get("/api/users/logout")
        self.client.cookies[settings.REFRESH_COOKIE_NAME] = cookie

        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    @override_settings(VALIDATE_SESSION_ON_EVERY_REQUEST=True)
    def test_session_check_on_every_request(self):
        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        cookie = self.client.cookies[settings.REFRESH_COOKIE_NAME].value
        self.client.get("/api/users/logout")
        self.client.cookies[settings.REFRESH_COOKIE_NAME] = cookie

        resp = self.client.get("/api/users/profile")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


# Follow endpoints

class FollowFlowTests(APITestCase):
    """alice follows bob, bob accepts, alice unfollows."""

    def setUp(self):
        self.alice = make_identity("alice")
        self.bob = make_identity("bob")
        self.alice_client = signed_in_client(self.alice)
        self.bob_client = signed_in_client(self.bob)

    def _send_request(self):
        resp = self.alice_client.post(f"/api/users/follow/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Follow request sent")
        return resp.data["requestId"]

    def test_follow_and_accept(self):
        request_id = self._send_request()
        request = Notification.objects.get(pk=request_id)
        self.assertEqual(
            (request.sender, request.receiver, request.type, request.status),
            (self.alice, self.bob, Notification.FOLLOW_REQUEST, Notification.PENDING),
        )

        resp = self.bob_client.get("/api/users/notifications")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([n["id"] for n in resp.data], [request_id])
        self.assertEqual(resp.data[0]["sender"]["username"], "alice")

        resp = self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Follow request accepted")

        request.refresh_from_db()
        self.assertEqual(request.status, Notification.ACCEPTED)
        self.assertEqual(list(self.alice.following.all()), [self.bob])
        self.assertEqual(list(self.bob.followers.all()), [self.alice])

        resp = self.alice_client.get("/api/users/notifications")
        self.assertEqual(len(resp.data), 1)
        self.assertEqual(resp.data[0]["type"], "accepted_request")
        self.assertEqual(resp.data[0]["sender"]["id"], str(self.bob.pk))
        self.assertIsNone(resp.data[0]["status"])

        resp = self.alice_client.get("/api/users/following")
        self.assertEqual(resp.data["followingCount"], 1)
        self.assertEqual(resp.data["followingUsers"][0]["username"], "bob")

        resp = self.bob_client.get("/api/users/followers")
        self.assertEqual(resp.data["followersCount"], 1)
        self.assertEqual(resp.data["followerUsers"][0]["username"], "alice")

        resp = self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_follow_errors(self):
        resp = self.alice_client.post(f"/api/users/follow/{self.alice.pk}")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"message": "You cannot follow yourself"})

        resp = self.alice_client.post("/api/users/follow/3f2504e0-4f89-11d3-9a0c-0305e82c3301")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        resp = self.alice_client.post("/api/users/follow/not-a-uuid")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        self._send_request()
        resp = self.alice_client.post(f"/api/users/follow/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reject(self):
        request_id = self._send_request()
        resp = self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "rejected"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["message"], "Follow request rejected")
        self.assertFalse(Follow.objects.exists())

        resp = self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_respond_errors(self):
        request_id = self._send_request()

        resp = self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "later"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"message": "Invalid status value"})

        resp = self.alice_client.put(f"/api/users/follow-request/{request_id}", {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        resp = self.bob_client.put("/api/users/follow-request/999999", {"status": "accepted"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_unfollow(self):
        request_id = self._send_request()
        self.bob_client.put(f"/api/users/follow-request/{request_id}", {"status": "accepted"}, format="json")

        resp = self.alice_client.post(f"/api/users/unfollow/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(self.alice.following.exists())
        self.assertFalse(self.bob.followers.exists())

        resp = self.alice_client.post(f"/api/users/unfollow/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data, {"message": "You are not following this user"})

        resp = self.alice_client.post("/api/users/unfollow/3f2504e0-4f89-11d3-9a0c-0305e82c3301")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_follow_requires_authentication(self):
        resp = APIClient().post(f"/api/users/follow/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(Notification.objects.exists())


# Profiles and search

class ProfileTests(APITestCase):
    def setUp(self):
        self.alice = make_identity("alice")
        self.bob = make_identity("bob", private_profile=True, description="hi", genre="Male")
        self.alice_client = signed_in_client(self.alice)

    def test_private_profile_is_reduced_for_non_followers(self):
        resp = self.alice_client.get(f"/api/users/profile/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(
            resp.data,
            {
                "name": "Bob",
                "last_name": "Tester",
                "username": "bob",
                "description": "hi",
                "private_profile": True,
            },
        )

    def test_private_profile_is_full_for_followers(self):
        machine = RelationshipStateMachine()
        request = machine.follow(self.alice, self.bob)
        machine.respond(self.bob, request.pk, Notification.ACCEPTED)

        resp = self.alice_client.get(f"/api/users/profile/{self.bob.pk}")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["genre"], "Male")
        self.assertEqual(resp.data["followers"], [str(self.alice.pk)])
        self.assertEqual(resp.data["relationship"], "following")
        self.assertNotIn("email", resp.data)

    def test_unknown_profile(self):
        resp = self.alice_client.get("/api/users/profile/3f2504e0-4f89-11d3-9a0c-0305e82c3301")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data, {"message": "User to view not found"})

    def test_update_profile(self):
        data = {
            "name": "Alicia",
            "last_name": "Smith",
            "description": "Hello",
            "date_birth": "1990-05-17",
            "phone_number": "5551234567",
            "private_profile": "true",
        }
        resp = self.alice_client.put("/api/users/updateProfile", data, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        self.alice.refresh_from_db()
        self.assertEqual(self.alice.first_name, "Alicia")
        self.assertEqual(self.alice.phone_number, "5551234567")
        self.assertEqual(str(self.alice.date_birth), "1990-05-17")
        self.assertTrue(self.alice.private_profile)
        self.assertEqual(self.alice.version, 1)

    def test_update_profile_reports_all_errors(self):
        data = {"last_name": "Sm1th", "phone_number": "123", "date_birth": "yesterday"}
        resp = self.alice_client.put("/api/users/updateProfile", data, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        messages = [e["error"] for e in resp.data["errors"]]
        self.assertIn("Name and last name are required fields", messages)
        self.assertIn("Invalid data type in Last Name. Expected string without special characters or numbers.", messages)
        self.assertIn("Invalid phone number format. Expected a 10-digit number.", messages)
        self.assertIn("Invalid data type in Date of Birth. Expected valid Date format.", messages)

    def test_update_profile_with_stale_version_is_conflict(self):
        Identity.objects.filter(pk=self.alice.pk).update(version=3)
        stale = Identity.objects.get(pk=self.alice.pk)
        Identity.objects.filter(pk=self.alice.pk).update(version=4)
        with self.assertRaises(Conflict):
            stale.update_if_current(first_name="Late")
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.first_name, "Alice")

    def test_search(self):
        make_identity("bobby")
        resp = self.alice_client.get("/api/users/search", {"q": "BOB"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([i["username"] for i in resp.data], ["bob", "bobby"])

        resp = self.alice_client.get("/api/users/search")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


# Admin

class AdminTests(TestCase):
    def test_changelists_load(self):
        admin_user = Identity.objects.create_superuser(
            username="admin", email="admin@example.com", password="adminpass"
        )
        alice = make_identity("alice")
        bob = make_identity("bob")
        RelationshipStateMachine().follow(alice, bob)
        SessionStore().create_session(alice)

        self.client.force_login(admin_user)
        for url in [
            "/admin/socialgraph/identity/",
            "/admin/socialgraph/notification/",
            "/admin/socialgraph/session/",
            "/admin/socialgraph/follow/",
        ]:
            with self.subTest(url=url):
                self.assertEqual(self.client.get(url).status_code, 200)

    def test_session_change_form_hides_refresh_value(self):
        admin_user = Identity.objects.create_superuser(
            username="admin", email="admin@example.com", password="adminpass"
        )
        alice = make_identity("alice")
        refresh_value = SessionStore().create_session(alice)
        session = Session.objects.get(refresh_token=refresh_value)

        self.client.force_login(admin_user)
        resp = self.client.get(f"/admin/socialgraph/session/{session.pk}/change/")
        self.assertEqual(resp.status_code, 200)
        self.assertNotContains(resp, refresh_value)
        self.assertNotContains(self.client.get("/admin/socialgraph/session/"), refresh_value)


# Migrations

class MigrationTests(TestCase):
    def test_models_and_migrations_agree(self):
        out = StringIO()
        try:
            call_command("makemigrations", "socialgraph", "--check", "--dry-run", stdout=out)
        except SystemExit:
            self.fail(f"Model changes without a migration:\n{out.getvalue()}")
