"""
Authentication service using Firebase Admin.
"""

import logging
from typing import Dict, Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError

from ..errors import AuthError, AuthUnavailable, ExpiredCredential, InvalidCredential
from ..models import Identity

logger = logging.getLogger(__name__)

APP_NAME = "blockfest"


class AuthService:
    """Verifies ID tokens and manages users through Firebase Admin"""

    def __init__(self, service_account_path: Optional[str] = None):
        self.service_account_path = service_account_path
        self._app = None

        if not service_account_path:
            logger.warning("FIREBASE_SERVICE_ACCOUNT_PATH not set, using application default credentials")

    @property
    def app(self):
        if self._app is None:
            self._app = self._initialize()
        return self._app

    def _initialize(self):
        try:
            return firebase_admin.get_app(APP_NAME)
        except ValueError:
            pass

        try:
            if self.service_account_path:
                credential = credentials.Certificate(self.service_account_path)
            else:
                credential = credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(credential, name=APP_NAME)
        except (ValueError, OSError) as e:
            logger.error(f"Failed to initialize Firebase Admin SDK: {e}")
            raise AuthUnavailable(f"Firebase Admin SDK is not configured: {e}") from e

        logger.info("Firebase Admin SDK initialized successfully")
        return app

    def verify_token(self, id_token: str) -> Identity:
        """
        Decode a Firebase ID token.

        Raises:
            ExpiredCredential: the token is past its expiry
            InvalidCredential: anything else wrong with the token
        """
        if not id_token:
            raise InvalidCredential("No token provided")
        app = self.app
        try:
            claims = auth.verify_id_token(id_token, app=app)
        except auth.ExpiredIdTokenError as e:
            raise ExpiredCredential("Token expired") from e
        except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as e:
            logger.error(f"Error verifying Firebase ID token: {e}")
            raise InvalidCredential("Invalid token") from e
        except FirebaseError as e:
            logger.error(f"Firebase rejected token verification: {e}")
            raise InvalidCredential("Invalid token") from e
        return Identity.from_claims(claims)

    def register(self, email: str, password: str) -> str:
        """Create a user and issue the email verification link; returns the uid"""
        app = self.app
        try:
            user = auth.create_user(email=email, password=password, app=app)
            auth.generate_email_verification_link(email, app=app)
        except (FirebaseError, ValueError) as e:
            raise AuthError(str(e)) from e
        logger.info(f"Registered user {user.uid}")
        return user.uid

    def login(self, email: str) -> Dict[str, str]:
        """Look up a user by email; only verified emails may log in"""
        app = self.app
        try:
            user = auth.get_user_by_email(email, app=app)
        except (FirebaseError, ValueError) as e:
            raise AuthError("User not found") from e
        if not user.email_verified:
            raise InvalidCredential("Email not verified.")
        return {"uid": user.uid}

    def set_admin_claim(self, uid: str) -> None:
        app = self.app
        try:
            auth.set_custom_user_claims(uid, {"admin": True}, app=app)
        except (FirebaseError, ValueError) as e:
            logger.error(f"Error setting admin claim for user {uid}: {e}")
            raise AuthError(str(e)) from e
        logger.info(f"Successfully set admin claim for user {uid}")
