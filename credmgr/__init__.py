"""
CredManager - Personal Credential Store

Register named accounts (identifier + secret), update them, recall them later.
Secrets are never written in plaintext.

Key Features:
- Per-secret encryption: fresh salt + fresh key material, PBKDF2 → AES-256-GCM
- Second encryption layer over every record file (process-wide key)
- Versioned history: every edit writes version N+1 and archives version N

Components:
- crypto.py: All cryptographic operations (one file!)
- models.py: SecretValue and Record
- codec.py: Record ⇄ encrypted .ser file
- store.py: Ordered in-memory record set (active / archived)
- manager.py: Create / update / delete protocol across both stores
- config.py: Storage locations and the process-wide key
- display.py: Console table rendering

Usage:
    python cred_main.py          # Interactive menu
"""

__version__ = "1.0.0"
__author__ = "CredManager Team"
