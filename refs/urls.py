from django.urls import path

from . import views

app_name = 'refs'

urlpatterns = [
    path('preview/', views.preview, name='preview'),
    path('mention/', views.mention_at_cursor, name='mention_at_cursor'),
    path('mention/insert/', views.mention_insert, name='mention_insert'),
]
