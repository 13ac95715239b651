"""SchemaIR: structured relational schema IR with validation and Prisma rendering."""

__version__ = "0.1.0"
