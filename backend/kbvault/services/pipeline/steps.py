"""
Pipeline stage identifiers, in execution order.
"""
AUTH = "auth"
UPLOAD = "upload"
VALIDATION = "validation"
CONVERSION = "convertapi-conversion"
HTML_EXTRACTION = "html-extraction"
IMAGE_DISCOVERY = "image-discovery"
IMAGE_DOWNLOAD = "image-download"
HTML_FINALIZATION = "html-finalization"
TEXT_EXTRACTION = "text-extraction"
EMBEDDING = "embedding-generation"
KNOWLEDGE_STORAGE = "knowledge-storage"
JOB_FINALIZATION = "job-finalization"

PIPELINE_STEPS = (
    (AUTH, "Authentication", "Resolve the user submitting the document"),
    (UPLOAD, "Upload PDF", "Store the PDF in object storage"),
    (VALIDATION, "Validate PDF", "Check the stored file is a readable, unencrypted PDF"),
    (CONVERSION, "Convert to HTML", "Convert the PDF to HTML with ConvertAPI"),
    (HTML_EXTRACTION, "Extract HTML", "Download the converted HTML document"),
    (IMAGE_DISCOVERY, "Discover Images", "Find remote and inline base64 images"),
    (IMAGE_DOWNLOAD, "Relocate Images", "Copy images into object storage"),
    (HTML_FINALIZATION, "Finalize HTML", "Point image references at stored copies and save the HTML"),
    (TEXT_EXTRACTION, "Extract Text", "Strip markup to plain searchable text"),
    (EMBEDDING, "Generate Embedding", "Create the vector embedding for search"),
    (KNOWLEDGE_STORAGE, "Store Knowledge Entry", "Insert the document into the knowledge base"),
    (JOB_FINALIZATION, "Finalize Job", "Mark the processing job completed"),
)
