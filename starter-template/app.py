"""
Market Forge Starter App
========================

A ready-to-run Flask application with all Market Forge modules enabled.

Run with:
    python app.py

Visit:
    http://localhost:5000/printful        - POD catalog browser
    http://localhost:5000/api/printful    - Printful API info
    http://localhost:5000/api/health      - Health check
"""

from marketforge import Config, create_app

app = create_app()


if __name__ == '__main__':
    print("\n" + "=" * 60)
    print("Market Forge")
    print("=" * 60)
    print(f"Catalog Browser: http://localhost:{Config.port}/printful")
    print(f"Printful API:    http://localhost:{Config.port}/api/printful")
    print(f"Health Check:    http://localhost:{Config.port}/api/health")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=Config.port, debug=True)
