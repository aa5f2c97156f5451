"""
Report which environment variables the API will see.

Required variables missing -> exit code 1. Secrets are masked.

Run from the backend/ directory:
    python scripts/check_env.py
"""
import os
import sys
from typing import Mapping, Optional

from dotenv import dotenv_values

REQUIRED = ["DATABASE_URL", "ENVIRONMENT"]

OPTIONAL = [
    "JWT_SECRET",
    "CORS_ORIGINS",
    "SENDGRID_API_KEY",
    "FROM_EMAIL",
    "GMAIL_USER",
    "GMAIL_APP_PASSWORD",
    "EMAIL_USER",
    "EMAIL_APP_PASSWORD",
    "WAWP_INSTANCE_ID",
    "WAWP_ACCESS_TOKEN",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "ADMIN_EMAIL",
    "ADMIN_PASSWORD",
]

SECRET_MARKERS = ("SECRET", "PASSWORD", "TOKEN", "KEY")


def mask(name: str, value: str) -> str:
    if not any(marker in name for marker in SECRET_MARKERS):
        return value
    if len(value) <= 4:
        return "****"
    return f"{value[:2]}{'*' * (len(value) - 4)}{value[-2:]}"


def collect(env: Mapping[str, Optional[str]]) -> dict:
    """Split variables into present/missing for both groups."""
    report = {"required": {}, "optional": {}, "missing": []}
    for name in REQUIRED:
        value = env.get(name)
        if value:
            report["required"][name] = mask(name, value)
        else:
            report["missing"].append(name)
    for name in OPTIONAL:
        value = env.get(name)
        report["optional"][name] = mask(name, value) if value else None
    return report


def load_env(env_file: str = ".env") -> dict:
    """Process env overrides values from the .env file, as in config.Settings."""
    values = {k: v for k, v in dotenv_values(env_file).items() if v is not None} if os.path.exists(env_file) else {}
    values.update(os.environ)
    return values


def main() -> int:
    report = collect(load_env())

    print("Required:")
    for name in REQUIRED:
        shown = report["required"].get(name)
        print(f"  {'✅' if shown else '❌'} {name}" + (f" = {shown}" if shown else " (missing)"))

    print("Optional:")
    for name, shown in report["optional"].items():
        print(f"  {'✅' if shown else '⚪'} {name}" + (f" = {shown}" if shown else ""))

    if report["missing"]:
        print(f"\n❌ Missing required variables: {', '.join(report['missing'])}")
        return 1
    print("\n✅ Environment looks complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
