#!/usr/bin/env python3
"""
Generate API keys for portal users and a JWT secret for the API server.
Keys can be inserted into the portal_users table; the secret goes in .env.
"""

import secrets
import string


def generate_api_key(prefix="hc", length=32):
    """Generate a secure random API key."""
    chars = string.ascii_letters + string.digits
    random_part = ''.join(secrets.choice(chars) for _ in range(length))
    return f"{prefix}_{random_part}"


def generate_secret_key():
    return secrets.token_hex(32)


if __name__ == "__main__":
    print("=" * 70)
    print("Clinical Records Portal – Key Generator")
    print("=" * 70)
    print()

    print("JWT secret (copy to your .env file):")
    print("-" * 70)
    print(f"  JWT_SECRET_KEY={generate_secret_key()}")
    print()

    print("=" * 70)
    print("SQL Insert Examples:")
    print("=" * 70)
    print()
    print("-- For a Patient (id_persona = the patient's own persona row):")
    print(f"""
INSERT INTO portal_users
    (display_name, role, id_persona, api_key, is_active)
VALUES
    ('Ana Torres', 'patient', 1, '{generate_api_key()}', 1);

-- Family members the patient may act for:
INSERT INTO portal_user_profiles (user_id, id_persona) VALUES (1, 2);
""")

    print("-- For a Clinician (id_persona must have a personal_medico row):")
    print(f"""
INSERT INTO portal_users
    (display_name, role, id_persona, api_key, is_active)
VALUES
    ('Dr. Luis Paredes', 'medical', 10, '{generate_api_key()}', 1);
""")

    print("-- For an Admin:")
    print(f"""
INSERT INTO portal_users
    (display_name, role, id_persona, api_key, is_active)
VALUES
    ('Administrador', 'admin', NULL, '{generate_api_key()}', 1);
""")

    print("=" * 70)
    print("Note: Run these SQL statements in your database to create users.")
    print("=" * 70)
