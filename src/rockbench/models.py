from pydantic import BaseModel


class StatusResponse(BaseModel):
    generator_identifier: str
    mode: str
    phase: str
    documents_issued: int
    patches_issued: int
    in_flight: int
    id_bound: int
