"""
Simple server starter for local development
"""
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

if __name__ == "__main__":
    import uvicorn
    from config.settings import settings

    print("=" * 60)
    print("Starting QuickBooks Connector")
    print("=" * 60)
    print(f"Environment: {settings.environment} (QuickBooks {settings.quickbooks_environment})")
    print(f"Server will be available at: http://localhost:{settings.api_port}")
    print(f"Connect QuickBooks at: http://localhost:{settings.api_port}/api/quickbooks/auth/connect")
    print("\nPress Ctrl+C to stop\n")

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
