"""Test settings, applied before any orderhub module reads its configuration."""

import os
import tempfile

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.gettempdir(), "orderhub-unused.db"
)
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["APP_BASE_URL"] = "https://shop.example.com"
os.environ["SERVICE_FEE_CENTS"] = "229"
os.environ["PROCESSING_FEE_RATE"] = "0.029"
os.environ.pop("NASH_WEBHOOK_SECRET", None)
os.environ["STRIPE_SECRET_KEY"] = "sk_test_orderhub"
os.environ["NASH_API_KEY"] = "nash_test_key"
os.environ["NASH_ORG_ID"] = "org_test"
os.environ["NASH_API_BASE_URL"] = "https://nash.test"
