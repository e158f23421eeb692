"""URL configuration for agora project."""

from django.urls import include, path

urlpatterns = [
    path('refs/', include('refs.urls')),
]
