#tracking/urls.py
from django.urls import path
from . import views

urlpatterns = [
    path("api/track/generate", views.generate_track, name="generate_track"),
    path("api/location", views.post_location, name="post_location_short"),
    path("api/location/update", views.post_location, name="post_location"),
    path("api/location/deactivate/<str:track_id>", views.deactivate_location, name="deactivate_location"),
    path("api/location/<str:track_id>", views.get_location, name="get_location"),
    path("api/path/<str:track_id>", views.get_path, name="get_path"),
    path("api/session/<str:session_id>", views.tracking_session, name="tracking_session"),
]
