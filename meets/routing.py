"""Channel routing for meet entry websockets."""

from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r"^ws/meets/(?P<meet_id>\d+)/drag/$", consumers.DragConsumer.as_asgi()),
]
