import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from socialgraph.exceptions import IdentityNotFound, SessionNotFound
from socialgraph.models import Identity, Session
from socialgraph.tokens import REFRESH, TokenIssuer, issue_access_token, refresh_ttl

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Refresh sessions of each identity, one per logged-in device.

    - create_session: mint a refresh token and record it.
    - rotate: swap a presented refresh value for a new one, single use.
    - revoke: forget a refresh value (logout), silently if unknown.
    - refresh: the full cookie-to-new-credentials flow used by the
      refresh endpoint.

    No cap on concurrent sessions unless ``MAX_SESSIONS_PER_IDENTITY`` is
    set, in which case the oldest sessions are evicted first.
    """

    def __init__(self, issuer=None):
        self.issuer = issuer or TokenIssuer()

    def sessions_for(self, identity):
        return list(Session.objects.filter(identity=identity).order_by("issued_at", "id"))

    def create_session(self, identity) -> str:
        now = timezone.now()
        ttl = refresh_ttl()
        refresh_value = self.issuer.issue(identity.pk, ttl, REFRESH)

        with transaction.atomic():
            Session.objects.filter(identity=identity, expires_at__lte=now).delete()
            Session.objects.create(
                identity=identity,
                refresh_token=refresh_value,
                issued_at=now,
                expires_at=now + ttl,
            )
            self._evict_overflow(identity)

        logger.info("Created session for identity %s", identity.pk)
        return refresh_value

    def _evict_overflow(self, identity):
        limit = getattr(settings, "MAX_SESSIONS_PER_IDENTITY", None)
        if not limit:
            return
        stale_ids = list(
            Session.objects.filter(identity=identity)
            .order_by("-issued_at", "-id")
            .values_list("id", flat=True)[limit:]
        )
        if stale_ids:
            Session.objects.filter(id__in=stale_ids).delete()
            logger.info("Evicted %d oldest sessions of identity %s", len(stale_ids), identity.pk)

    def rotate(self, identity_id, presented_refresh_value):
        """
        Replace ``presented_refresh_value`` with a fresh session.

        The lookup, removal and insert share one transaction and the matched
        row is locked, so of two concurrent rotations with the same value
        only one can find it.

        Returns:
            (new_refresh_value, new_access_token)

        Raises:
            SessionNotFound: the value is not an active session of this identity.
        """
        now = timezone.now()
        ttl = refresh_ttl()
        new_refresh_value = self.issuer.issue(identity_id, ttl, REFRESH)

        with transaction.atomic():
            session = (
                Session.objects.select_for_update()
                .filter(identity_id=identity_id, refresh_token=presented_refresh_value)
                .first()
            )
            if session is None:
                logger.warning("Rejected rotation of unknown refresh session for identity %s", identity_id)
                raise SessionNotFound()

            deleted, _ = Session.objects.filter(pk=session.pk).delete()
            if not deleted:
                raise SessionNotFound()

            Session.objects.create(
                identity_id=identity_id,
                refresh_token=new_refresh_value,
                issued_at=now,
                expires_at=now + ttl,
            )

        logger.info("Rotated session for identity %s", identity_id)
        return new_refresh_value, issue_access_token(identity_id)

    def revoke(self, identity, refresh_value):
        deleted, _ = Session.objects.filter(identity=identity, refresh_token=refresh_value).delete()
        if deleted:
            logger.info("Revoked session for identity %s", identity.pk)
        else:
            logger.info("Logout with no matching session for identity %s", identity.pk)

    def is_active(self, identity, refresh_value) -> bool:
        return Session.objects.filter(
            identity=identity,
            refresh_token=refresh_value,
            expires_at__gt=timezone.now(),
        ).exists()

    def refresh(self, presented_refresh_value):
        """
        Validate a refresh cookie value and rotate it.

        Returns:
            (identity, new_refresh_value, new_access_token)
        """
        identity_id = self.issuer.verify(presented_refresh_value, REFRESH)

        identity = Identity.objects.resolve(identity_id)
        if identity is None or not identity.is_active:
            raise IdentityNotFound()

        new_refresh_value, access_token = self.rotate(identity.pk, presented_refresh_value)
        return identity, new_refresh_value, access_token
