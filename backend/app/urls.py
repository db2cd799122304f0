"""
App URL configuration.
"""
from django.urls import path
from app.api import contracts, tasks

urlpatterns = [
    # Contracts
    path('contracts/', contracts.ContractListCreateView.as_view()),
    path('contracts/<uuid:contract_id>', contracts.ContractDetailView.as_view()),
    path('contracts/<uuid:contract_id>/timeline', contracts.ContractTimelineView.as_view()),
    path('contracts/<uuid:contract_id>/care-logs', contracts.ContractCareLogsView.as_view()),
    path('contracts/<uuid:contract_id>/tasks', contracts.ContractTasksView.as_view()),
    path('contracts/<uuid:contract_id>/schedule-preview', contracts.SchedulePreviewView.as_view()),

    # Tasks
    path('tasks/', tasks.TaskListView.as_view()),
    path('tasks/<uuid:task_id>', tasks.TaskDetailView.as_view()),
    path('tasks/<uuid:task_id>/complete', tasks.TaskCompleteView.as_view()),
]
