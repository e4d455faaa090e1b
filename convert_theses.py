"""CLI shim -- delegates to thesis_converter.cli.main().

Usage:
    python convert_theses.py SOURCE_BUCKET TARGET_BUCKET PROJECT_ID \
        DATABASE_ID COLLECTION_ID RETRIES BATCH_SIZE
"""

from thesis_converter.cli import main

if __name__ == "__main__":
    main()
