from fastapi import FastAPI, File, UploadFile, Body, status
import os
import logging
from datetime import date, datetime
from typing import List, Optional
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from excel_helper import export_from_list_to_stream, import_from_input_stream
from utils.errors import ExcelHelperError
from utils.result import Result


# Create logs directory if it doesn't exist
log_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
os.makedirs(log_dir, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logger.addHandler(file_handler)


class Person(BaseModel):
    """
    Record exchanged with spreadsheets by the API.

    Every field has a default so rows can be mapped onto `Person()`.
    """
    name: str = ""
    age: Optional[int] = None
    email: Optional[str] = None
    joined: Optional[date] = None


PERSON_HEADERS = ["Name", "Age", "Email", "Joined"]
PERSON_FIELDS = ["name", "age", "email", "joined"]


class ImportResponse(BaseModel):
    """
    Response schema for spreadsheet imports.

    Attributes:
        success: Whether the import succeeded
        status_code: HTTP status code of the response
        status: HTTP status description
        file_name: Name of the uploaded file
        records: Parsed records, in row order
        total_rows: Number of records parsed
    """
    success: bool
    status_code: Optional[int] = 200
    status: Optional[str] = "OK"
    file_name: Optional[str] = None
    records: Optional[List[Person]] = None
    total_rows: Optional[int] = None


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Excel List Mapper API",
    description="API for converting record lists to and from Excel files",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API Endpoints
@app.post(
    "/export/",
    tags=["Excel Export"]
)
def export_people(people: List[Person] = Body(...), file_name: str = "people"):
    """
    Download the posted people as an Excel attachment.

    The sheet has a bold header row (Name, Age, Email, Joined) followed by
    one row per person. The attachment is named `<file_name>.xlsx`.
    """
    logger.info(f"Exporting {len(people)} people as {file_name}.xlsx")
    try:
        return export_from_list_to_stream(people, PERSON_HEADERS, PERSON_FIELDS, Person, file_name)
    except ExcelHelperError as e:
        logger.warning(f"Export rejected: {str(e)}")
        result = Result.invalid_input(str(e))
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())


@app.post(
    "/import/",
    tags=["Excel Import"],
    response_model=ImportResponse
)
def import_people(file: UploadFile = File(...)):
    """
    Parse an uploaded spreadsheet into people.

    The first row is a header; columns are Name, Age, Email, Joined in that
    order. Blank rows are ignored. A file name containing ".xlsx" is read as
    a modern workbook, anything else as a legacy .xls workbook.

    Returns:
        ImportResponse: Parsed records, or an error payload with status 400/500
    """
    file_name = file.filename or ""
    logger.info(f"Importing people from {file_name}")

    try:
        people = import_from_input_stream(file_name, file.file, Person, *PERSON_FIELDS)
    except ExcelHelperError as e:
        logger.warning(f"Import rejected: {str(e)}")
        result = Result.invalid_input(str(e))
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected error importing {file_name}: {str(e)}")
        result = Result.server_error(f"Import error: {str(e)}")
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())

    return ImportResponse(
        success=True,
        status_code=status.HTTP_200_OK,
        file_name=file_name,
        records=people,
        total_rows=len(people)
    )


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel List Mapper API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
