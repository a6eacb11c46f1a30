#!/usr/bin/env python3
"""Helper script to check and create the .env file for the travel engine."""

from pathlib import Path
import os

TEMPLATE = """# Record store backend: memory, file or supabase
TRAVEL_RECORD_STORE=file
TRAVEL_DATA_ROOT=./data

# Supabase Configuration (required when TRAVEL_RECORD_STORE=supabase)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
TRAVEL_SUPABASE_URL=https://your-project-id.supabase.co
TRAVEL_SUPABASE_KEY=your-service-role-key-here

# API Configuration
TRAVEL_API_PREFIX=/api
# TRAVEL_FRONTEND_ALLOWED_ORIGINS - Leave commented to use defaults
# JSON array: ["http://localhost:5173"] or comma-separated: http://localhost:5173,http://127.0.0.1:5173

# Geocoding (optional - leave empty to resolve from city and state tables only)
TRAVEL_GEOCODER_BASE_URL=https://nominatim.openstreetmap.org

# Optional workbook (City, Latitude, Longitude) extending the city table
# TRAVEL_CITY_COORDINATES_FILE=./data/cities.xlsx
"""


def _masked(value: str) -> str:
    return value[:20] + "..." + value[-10:] if len(value) > 30 else value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Travel Engine Environment Checker")
    print("=" * 60)
    print()

    if env_file.exists():
        print(f"✅ Found .env file at: {env_file}")
        print()
        print("Current contents:")
        print("-" * 60)
        for line in env_file.read_text(encoding="utf-8").splitlines():
            if line.startswith("TRAVEL_SUPABASE_KEY=") and "=" in line:
                name, value = line.split("=", 1)
                print(f"{name}={_masked(value.strip())}")
            else:
                print(line)
        print("-" * 60)
        print()
    else:
        print(f"❌ .env file NOT found at: {env_file}")
        print("Creating template .env file...")
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"✅ Created .env file at: {env_file}")
        print("⚠️  Please edit .env before starting the server!")
        return

    print("Checking environment variables...")
    for name in ("TRAVEL_RECORD_STORE", "TRAVEL_SUPABASE_URL", "TRAVEL_SUPABASE_KEY", "TRAVEL_GEOCODER_BASE_URL"):
        value = os.getenv(name)
        if value:
            print(f"✅ {name} (from environment): {_masked(value)}")
        else:
            print(f"➖ {name} not set in environment")
    print()

    print("Testing config loading...")
    try:
        import sys
        sys.path.insert(0, str(project_root / "src"))
        from travel_engine.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return

    print(f"Record store: {settings.record_store}")
    print(f"Data root: {settings.data_root}")
    print(f"Geocoder: {settings.geocoder_base_url or 'not configured'}")
    if settings.record_store == "supabase" and not (settings.supabase_url and settings.supabase_key):
        print("=" * 60)
        print("❌ ERROR: Supabase record store selected but Supabase is NOT configured")
        print("=" * 60)
        print("1. Make sure variables start with the TRAVEL_ prefix")
        print("2. Make sure there are no spaces around = sign")
        print("3. Restart backend after editing .env")
    else:
        print("=" * 60)
        print("✅ SUCCESS: configuration is usable")
        print("=" * 60)


if __name__ == "__main__":
    main()
