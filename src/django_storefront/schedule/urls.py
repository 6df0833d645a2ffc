"""URL configuration for the schedule editor app.

Mount under the same event-scoped prefix as the checkout app.
"""

from django.urls import path

from django_storefront.schedule.views import EventScheduleView, ScheduleEditView

app_name = "schedule"

urlpatterns = [
    path("schedule/", EventScheduleView.as_view(), name="schedule"),
    path("schedule/edit/", ScheduleEditView.as_view(), name="schedule-edit"),
]
