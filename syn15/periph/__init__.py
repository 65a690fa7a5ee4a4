# syn15 I/O collaborators: the console behind OUT and IN
