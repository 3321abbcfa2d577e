"""A filesystem confined to one base directory, with quota tracking, walking and byte counting."""