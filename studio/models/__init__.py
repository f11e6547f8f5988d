# Package init for studio.models
from .media import Category as Category
from .media import Event as Event
from .media import EventCreate as EventCreate
from .media import Photo as Photo
from .media import PhotoUpdate as PhotoUpdate
