"""
Excel List Mapper

This package converts lists of typed records to and from Excel files and
streams generated workbooks as HTTP downloads.

Key modules:
- main.py: FastAPI application with import/export endpoints
- excel_helper.py: List <-> workbook mapping
- utils/descriptors.py: Field descriptors resolved from record annotations
- utils/converters.py: Cell text <-> field value conversion
- utils/result.py: Result pattern implementation for lookups and API errors
- utils/errors.py: Exception hierarchy
"""
