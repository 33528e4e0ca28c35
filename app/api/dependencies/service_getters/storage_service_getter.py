from app.infra.storage.r2_client import r2_client
from app.infra.storage.storage_interface import ObjectStorageInterface


def get_r2_client() -> ObjectStorageInterface:
    return r2_client
