"""FlipMatch: игра на поиск пар и relay синхронизации состояния."""
