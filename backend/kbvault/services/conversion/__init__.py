from .convertapi_client import ConvertAPIClient, decode_file_data

__all__ = ["ConvertAPIClient", "decode_file_data"]
