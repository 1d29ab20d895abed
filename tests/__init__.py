import os

# Cheap hashes and a fixed signing key for the whole test run
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
