import os
import sys
import importlib
import logging
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateTable, CreateIndex

# Basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Make the 'catalog' package importable when run from the project root
project_root = os.path.dirname(os.path.abspath(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

MODEL_MODULES = [
    'catalog.e_commerce.models',
    'catalog.inventory.models',
]


def get_all_metadata():
    """Import every model module and return Base.metadata."""
    try:
        Base = importlib.import_module("catalog.core.database").Base
    except (ImportError, AttributeError) as e:
        logger.error(f"Cannot import Base from catalog.core.database: {e}")
        sys.exit(1)

    for module_path in MODEL_MODULES:
        importlib.import_module(module_path)
        logger.info(f"Imported models from: {module_path}")

    return Base.metadata


def generate_sql_schema(output_file="database_schema.sql"):
    """Write the SQLite DDL for all tables and indexes to ``output_file``."""
    metadata = get_all_metadata()

    if not metadata.tables:
        logger.error("No tables found in metadata. Check the model imports.")
        return

    dialect = sqlite.dialect()
    sql_statements = ["PRAGMA foreign_keys=ON;", ""]

    logger.info(f"Tables found in metadata: {len(metadata.tables)}")

    # sorted_tables creates referenced tables first
    for table in metadata.sorted_tables:
        logger.info(f"Generating DDL for table: {table.name}")
        sql_statements.append(f"{str(CreateTable(table).compile(dialect=dialect)).strip()};\n")
        for index in sorted(table.indexes, key=lambda ix: ix.name):
            sql_statements.append(f"{str(CreateIndex(index).compile(dialect=dialect)).strip()};")
        sql_statements.append("")

    try:
        with open(output_file, "w", encoding="utf-8") as f:
            for stmt in sql_statements:
                f.write(stmt + "\n")
        logger.info(f"SQL schema written to: {output_file}")
    except IOError as e:
        logger.error(f"Cannot write to {output_file}: {e}")


if __name__ == "__main__":
    logger.info("Generating SQL schema...")
    generate_sql_schema(sys.argv[1] if len(sys.argv) > 1 else "database_schema.sql")
    logger.info("SQL schema generation finished.")
