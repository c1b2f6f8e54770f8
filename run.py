#!/usr/bin/env python3
"""
Gallery Manifest Service Entry Point.

Run the development server:
    python run.py

Print the manifest for the configured image directory and exit:
    python run.py --print-manifest

Or with Flask CLI:
    FLASK_APP=run flask run

For production, use a proper WSGI server like Gunicorn:
    gunicorn -w 4 -b 0.0.0.0:5000 'run:app'
"""
import json
import logging
import os
import sys

from gallery import create_app

logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(levelname)s:%(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    stream=sys.stdout,
)

# Determine config from environment, default to development
config_name = os.environ.get('FLASK_ENV', 'development')

app = create_app(config_name)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Gallery image manifest server')
    parser.add_argument('--print-manifest', action='store_true',
                        help='Print the manifest JSON and exit')
    parser.add_argument('--port', type=int, default=5000,
                        help='Port to listen on (default: 5000)')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    args = parser.parse_args()

    if args.print_manifest:
        from gallery.lib.manifest import ManifestBuilder
        manifest = ManifestBuilder.from_config(app.config).build()
        print(json.dumps(manifest.to_dict(), indent=2))
        sys.exit(1 if manifest.degraded else 0)

    print(f"Starting gallery service in {config_name} mode...")
    print(f"Images: {app.config['IMAGES_DIR']}")
    print(f"Timezone: {app.config['TIMEZONE']}")

    app.run(
        host=args.host,
        port=args.port,
        debug=app.config.get('DEBUG', False),
        threaded=True,
    )
