"""
Security — Bearer Auth, Passwords, Rate Limiting, Headers
=========================================================

Auth:
- HS256 JWT bearer tokens signed with JWT_SECRET
- One gate, verify(header, required_role), returns an AdminIdentity or
  EmployeeIdentity; 401 for a missing/invalid/expired token, 403 for a
  valid token without the required role claim
- require_role() decorator puts the identity on flask.g.identity

Passwords:
- bcrypt hashes (cost 10)

Rate Limiting:
- In-memory token bucket per IP address and tier
- 429 response when exceeded; DISABLE_RATE_LIMIT=true turns it off
"""

import os
import time
import logging
import functools
from collections import defaultdict
from threading import Lock
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import request, jsonify, g

from plancher.core import secrets
from plancher.core.errors import AuthError, ForbiddenError

log = logging.getLogger("plancher.security")

ALGORITHM = "HS256"
ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"


# ═══════════════════════════════════════════════════════════════════════════════
# Identities
# ═══════════════════════════════════════════════════════════════════════════════

class AdminIdentity:
    role = ROLE_ADMIN

    def __init__(self, admin_id: str, email: str = ""):
        self.id = admin_id
        self.email = email

    def __repr__(self):
        return f"AdminIdentity({self.id!r})"


class EmployeeIdentity:
    role = ROLE_EMPLOYEE

    def __init__(self, employee_id: int, secteur: str = "", email: str = ""):
        self.id = employee_id
        self.secteur = secteur
        self.email = email

    def __repr__(self):
        return f"EmployeeIdentity({self.id!r}, {self.secteur!r})"


# ═══════════════════════════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════════════════════════

def create_token(claims: dict, expires_hours: int = None) -> str:
    if expires_hours is None:
        expires_hours = secrets.get_int("jwt_expires_hours", 8)
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(hours=expires_hours)
    return jwt.encode(payload, secrets.get_key("jwt_secret"), algorithm=ALGORITHM)


def admin_token(admin: dict) -> str:
    return create_token({"role": ROLE_ADMIN, "adminId": admin["id"],
                         "email": admin.get("email")})


def employee_token(emp: dict) -> str:
    return create_token({"role": ROLE_EMPLOYEE, "employeeId": emp["id"],
                         "email": emp.get("email"), "secteur": emp.get("secteur")})


def _identity_from_claims(payload: dict):
    if payload.get("adminId") and payload.get("role", ROLE_ADMIN) == ROLE_ADMIN:
        return AdminIdentity(payload["adminId"], payload.get("email") or "")
    if payload.get("employeeId") is not None and payload.get("role", ROLE_EMPLOYEE) == ROLE_EMPLOYEE:
        return EmployeeIdentity(payload["employeeId"], payload.get("secteur") or "",
                                payload.get("email") or "")
    return None


def verify(auth_header: str, required_role: str = None):
    """Verify an Authorization header and return the caller's identity.

    Args:
        auth_header: raw header value, expected "Bearer <jwt>"
        required_role: "admin", "employee", or None to accept either
    """
    auth_header = auth_header or ""
    token = auth_header[7:] if auth_header.startswith("Bearer ") else None
    if not token:
        raise AuthError("Unauthorized")
    try:
        payload = jwt.decode(token, secrets.get_key("jwt_secret"), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    identity = _identity_from_claims(payload)
    if identity is None:
        raise ForbiddenError("Forbidden")
    if required_role and identity.role != required_role:
        log.warning("Role mismatch: %s token on %s route %s",
                    identity.role, required_role, request.path if request else "")
        raise ForbiddenError("Forbidden")
    return identity


def require_role(role: str = None):
    """Decorator: verify the bearer token, expose the identity as g.identity."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            g.identity = verify(request.headers.get("Authorization", ""), role)
            return f(*args, **kwargs)
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# Passwords
# ═══════════════════════════════════════════════════════════════════════════════

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()


def check_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # malformed stored hash
        return False


# ═══════════════════════════════════════════════════════════════════════════════
# Rate Limiting
# ═══════════════════════════════════════════════════════════════════════════════

class RateLimiter:
    """Simple in-memory rate limiter using token bucket algorithm."""

    def __init__(self):
        self._buckets = defaultdict(lambda: {"tokens": None, "last_refill": time.time()})
        self._lock = Lock()

    def check(self, key: str, max_tokens: int = 60, refill_rate: float = 1.0) -> bool:
        """Check if request is allowed. Returns True if allowed, False if rate limited.

        Args:
            key: Unique key for the bucket (usually IP + endpoint group)
            max_tokens: Maximum burst capacity
            refill_rate: Tokens added per second
        """
        with self._lock:
            bucket = self._buckets[key]
            now = time.time()
            if bucket["tokens"] is None:
                bucket["tokens"] = max_tokens
            elapsed = now - bucket["last_refill"]

            bucket["tokens"] = min(max_tokens, bucket["tokens"] + elapsed * refill_rate)
            bucket["last_refill"] = now

            if bucket["tokens"] >= 1:
                bucket["tokens"] -= 1
                return True
            return False

    def reset(self):
        with self._lock:
            self._buckets.clear()


_limiter = RateLimiter()


RATE_LIMITS = {
    "default":     {"max_tokens": 60,  "refill_rate": 2.0},   # 120/min
    "auth":        {"max_tokens": 10,  "refill_rate": 0.2},   # 12/min (login attempts)
    "upload":      {"max_tokens": 20,  "refill_rate": 0.5},   # 30/min
    "ai":          {"max_tokens": 10,  "refill_rate": 0.2},   # 12/min (Gemini calls)
}


def rate_limit(tier: str = "default"):
    """Decorator to apply rate limiting to a route."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            if os.environ.get("DISABLE_RATE_LIMIT", "").lower() == "true":
                return f(*args, **kwargs)

            ip = request.remote_addr or "unknown"
            key = f"{ip}:{tier}"
            limits = RATE_LIMITS.get(tier, RATE_LIMITS["default"])

            if not _limiter.check(key, **limits):
                log.warning("Rate limit exceeded: %s tier=%s", ip, tier)
                return jsonify({"error": "Rate limit exceeded. Please try again shortly."}), 429

            return f(*args, **kwargs)
        return wrapper
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# Response Headers
# ═══════════════════════════════════════════════════════════════════════════════

def add_security_headers(response):
    """Add security + CORS headers to every response."""
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    if not response.headers.get("Cache-Control") and request.path.startswith("/api/"):
        response.headers["Cache-Control"] = "no-store"
    return response


def init_security(app):
    """Initialize security middleware on the Flask app."""
    app.after_request(add_security_headers)
    log.info("Security middleware initialized: bearer auth, rate limiting, headers")
